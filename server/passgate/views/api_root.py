from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.reverse import reverse


@api_view(["GET"])
@permission_classes([AllowAny])
def api_root(request, format=None):
    """
    API root endpoint to make the browsable API navigable.
    """
    def link(name):
        return reverse(name, request=request, format=format)

    return Response(
        {
            "health": link("health_check"),
            "schema": link("schema"),
            "auth_me": link("auth_me"),
            "passkey_register_begin": link("passkey_register_begin"),
            "passkey_register_complete": link("passkey_register_complete"),
            "passkey_login_begin": link("passkey_login_begin"),
            "passkey_login_complete": link("passkey_login_complete"),
            "passkeys": link("passkey_list"),
            "passkey_delete": link("passkey_delete"),
            "custom_login_initiate": link("custom_login_initiate"),
            "custom_login_respond": link("custom_login_respond"),
            "step_up_send": link("step_up_send"),
            "step_up_verify": link("step_up_verify"),
            "verify_credentials": link("verify_credentials"),
            "contact_change_start": link("contact_change_start"),
            "contact_change_verify_old": link("contact_change_verify_old"),
            "contact_change_verify_new": link("contact_change_verify_new"),
            "account_delete": link("account_delete"),
            "totp_setup": link("totp_setup"),
            "totp_confirm": link("totp_confirm"),
        }
    )
