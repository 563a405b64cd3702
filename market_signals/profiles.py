"""Profile store client: sign-in, profiles and usage credits over the Supabase REST API."""

import logging

import httpx

from market_signals.config import Settings
from market_signals.errors import ConfigurationError, ProfileStoreError
from market_signals.schemas import AuthSession, UserProfile

logger = logging.getLogger(__name__)

PROFILES_TABLE = "profiles"
INCREMENT_CREDITS_RPC = "increment_credits"
NOT_FOUND_CODE = "PGRST116"


def can_start_run(profile: UserProfile | None, limit: int = 3) -> bool:
    """
    Apply the free-tier policy to a profile.

    Args:
        profile (UserProfile | None): Profile, or None when no row exists yet.
        limit (int): Free runs allowed for non-pro users.

    Returns:
        bool: False when a non-pro user has used all free credits.
    """
    if profile is None or profile.is_pro:
        return True
    return profile.credits_used < limit


def credits_remaining(profile: UserProfile | None, limit: int = 3) -> int | None:
    """Free runs left, or None for unlimited (pro) users."""
    if profile is not None and profile.is_pro:
        return None
    used = profile.credits_used if profile is not None else 0
    return max(limit - used, 0)


class ProfileStore:
    """Narrow client over the identity-and-storage service."""

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self.settings = settings or Settings()
        if not self.settings.profile_store_configured:
            raise ConfigurationError(
                "SUPABASE_URL",
                "Profile store is not configured. Please set SUPABASE_URL and "
                "SUPABASE_ANON_KEY.",
            )
        self._client = client or httpx.Client(
            timeout=self.settings.request_timeout_s
        )
        self._base_url = self.settings.supabase_url.rstrip("/")
        self._session: AuthSession | None = None

    def _headers(self, access_token: str | None = None) -> dict[str, str]:
        token = access_token or (
            self._session.access_token if self._session else None
        )
        return {
            "apikey": self.settings.supabase_anon_key,
            "Authorization": f"Bearer {token or self.settings.supabase_anon_key}",
        }

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "ProfileStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def get_current_session(self) -> AuthSession | None:
        return self._session

    def sign_in(self, email: str, password: str) -> AuthSession:
        """
        Sign in with email and password and keep the session.

        Args:
            email (str): Account email.
            password (str): Account password.

        Returns:
            AuthSession: The signed-in session.

        Raises:
            ProfileStoreError: If the credentials are rejected or the call fails.
        """
        try:
            response = self._client.post(
                f"{self._base_url}/auth/v1/token",
                params={"grant_type": "password"},
                headers=self._headers(),
                json={"email": email, "password": password},
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("Sign-in failed: %s", exc)
            raise ProfileStoreError(f"Sign-in failed: {exc}") from exc

        try:
            payload = response.json()
            user = payload.get("user") or {}
            self._session = AuthSession(
                access_token=payload["access_token"],
                user_id=user["id"],
                email=user.get("email"),
            )
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            logger.error("Sign-in returned an unusable session: %s", exc)
            raise ProfileStoreError(
                f"Sign-in failed: malformed session payload ({exc!r})"
            ) from exc
        logger.info("Signed in as %s", self._session.email or self._session.user_id)
        return self._session

    def sign_out(self) -> None:
        """Sign out the current session, if any."""
        session = self._session
        self._session = None
        if session is None:
            return
        try:
            response = self._client.post(
                f"{self._base_url}/auth/v1/logout",
                headers=self._headers(session.access_token),
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise ProfileStoreError(f"Sign-out failed: {exc}") from exc

    def get_profile(self, user_id: str) -> UserProfile | None:
        """
        Fetch a user's profile row.

        Args:
            user_id (str): User ID.

        Returns:
            UserProfile | None: The profile, or None when no row exists yet.

        Raises:
            ProfileStoreError: On any failure other than a missing row.
        """
        try:
            response = self._client.get(
                f"{self._base_url}/rest/v1/{PROFILES_TABLE}",
                params={"id": f"eq.{user_id}", "select": "*"},
                headers={
                    **self._headers(),
                    "Accept": "application/vnd.pgrst.object+json",
                },
            )
        except httpx.HTTPError as exc:
            logger.error("Error fetching profile: %s", exc)
            raise ProfileStoreError(f"Profile lookup failed: {exc}") from exc

        if response.status_code == 406 and _error_code(response) == NOT_FOUND_CODE:
            return None
        if response.is_error:
            logger.error(
                "Error fetching profile: %s %s", response.status_code, response.text
            )
            raise ProfileStoreError(
                f"Profile lookup failed with status {response.status_code}"
            )

        payload = response.json()
        if isinstance(payload, list):
            if not payload:
                return None
            payload = payload[0]
        return UserProfile.model_validate(payload)

    def increment_credits(self, user_id: str) -> None:
        """
        Record one used credit. Best-effort: failures are logged, not raised.

        Args:
            user_id (str): User ID.
        """
        try:
            response = self._client.post(
                f"{self._base_url}/rest/v1/rpc/{INCREMENT_CREDITS_RPC}",
                headers=self._headers(),
                json={"user_id": user_id},
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("Incrementing credits failed for %s: %s", user_id, exc)


def _error_code(response: httpx.Response) -> str | None:
    try:
        payload = response.json()
    except ValueError:
        return None
    return payload.get("code") if isinstance(payload, dict) else None
