import logging
from supabase import Client
from app.modules.auth.schemas import LoginRequest, TokenResponse, Principal
from app.core.errors import Forbidden, Unauthenticated, store_error_message

logger = logging.getLogger(__name__)

PROFILE_COLUMNS = "id, email, name, is_active, role_name, department_id"


class AuthService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def login(self, login_data: LoginRequest) -> TokenResponse:
        """Authenticate user using Supabase Auth. Expects a fresh, unshared client."""
        try:
            auth_response = self.supabase.auth.sign_in_with_password({
                "email": login_data.email,
                "password": login_data.password
            })
        except Exception as e:
            logger.info(f"Sign-in rejected for {login_data.email}: {e}")
            raise Unauthenticated("Invalid email or password")

        if not auth_response.user or not auth_response.session:
            raise Unauthenticated("Invalid email or password")

        return TokenResponse(
            access_token=auth_response.session.access_token,
            token_type="bearer",
            user_id=auth_response.user.id,
            email=auth_response.user.email or login_data.email
        )

    def resolve_principal(self, token: str) -> Principal:
        """Bearer token -> Principal. Read-only: validates with the identity provider, then loads the profile."""
        try:
            user_response = self.supabase.auth.get_user(token)
        except Exception as e:
            logger.debug(f"Token validation failed: {e}")
            raise Unauthenticated("Invalid or expired token")
        if not user_response or not user_response.user:
            raise Unauthenticated("User not authenticated")
        user = user_response.user

        try:
            result = self.supabase.table("profiles_with_roles")\
                .select(PROFILE_COLUMNS)\
                .eq("id", user.id)\
                .maybe_single()\
                .execute()
        except Exception as e:
            logger.error(f"Error loading profile for {user.id}: {store_error_message(e)}")
            raise Forbidden("Profile not found")
        if not result or not result.data:
            raise Forbidden("Profile not found")

        profile = result.data
        return Principal(
            id=user.id,
            email=profile.get("email") or user.email,
            name=profile.get("name"),
            is_active=bool(profile.get("is_active")),
            role_name=profile.get("role_name"),
            department_id=profile.get("department_id"),
        )
