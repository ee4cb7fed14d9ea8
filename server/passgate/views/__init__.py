from passgate.views.account import (
    account_delete,
    contact_change_start,
    contact_change_verify_new,
    contact_change_verify_old,
    totp_confirm,
    totp_setup,
)
from passgate.views.api_root import api_root
from passgate.views.auth import auth_me
from passgate.views.custom_auth import custom_login_initiate, custom_login_respond
from passgate.views.health import health_check
from passgate.views.passkey import (
    passkey_delete,
    passkey_list,
    passkey_login_begin,
    passkey_login_complete,
    passkey_register_begin,
    passkey_register_complete,
)
from passgate.views.step_up import step_up_send, step_up_verify, verify_credentials

__all__ = [
    "account_delete",
    "api_root",
    "auth_me",
    "contact_change_start",
    "contact_change_verify_new",
    "contact_change_verify_old",
    "custom_login_initiate",
    "custom_login_respond",
    "health_check",
    "passkey_delete",
    "passkey_list",
    "passkey_login_begin",
    "passkey_login_complete",
    "passkey_register_begin",
    "passkey_register_complete",
    "step_up_send",
    "step_up_verify",
    "totp_confirm",
    "totp_setup",
    "verify_credentials",
]
