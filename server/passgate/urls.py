from django.urls import path

from passgate import views

urlpatterns = [
    path("", views.api_root, name="api_root"),
    path("health/", views.health_check, name="health_check"),
    path("auth/me/", views.auth_me, name="auth_me"),
    # Passkeys
    path("auth/passkey/register/begin/", views.passkey_register_begin, name="passkey_register_begin"),
    path("auth/passkey/register/complete/", views.passkey_register_complete, name="passkey_register_complete"),
    path("auth/passkey/login/begin/", views.passkey_login_begin, name="passkey_login_begin"),
    path("auth/passkey/login/complete/", views.passkey_login_complete, name="passkey_login_complete"),
    path("auth/passkeys/", views.passkey_list, name="passkey_list"),
    path("auth/passkeys/delete/", views.passkey_delete, name="passkey_delete"),
    # Custom challenge login
    path("auth/custom/initiate/", views.custom_login_initiate, name="custom_login_initiate"),
    path("auth/custom/respond/", views.custom_login_respond, name="custom_login_respond"),
    # Step-up
    path("auth/step-up/send/", views.step_up_send, name="step_up_send"),
    path("auth/step-up/verify/", views.step_up_verify, name="step_up_verify"),
    path("auth/verify-credentials/", views.verify_credentials, name="verify_credentials"),
    path("auth/totp/setup/", views.totp_setup, name="totp_setup"),
    path("auth/totp/confirm/", views.totp_confirm, name="totp_confirm"),
    # Account
    path("profile/contact/change/start/", views.contact_change_start, name="contact_change_start"),
    path("profile/contact/change/verify-old/", views.contact_change_verify_old, name="contact_change_verify_old"),
    path("profile/contact/change/verify-new/", views.contact_change_verify_new, name="contact_change_verify_new"),
    path("account/delete/", views.account_delete, name="account_delete"),
]
