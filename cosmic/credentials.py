"""Credential lookup for plugin authentication.

Provides secure credential storage using the system keyring with a
fallback to environment variables for headless hosts and CI.

Credential lookup order:
1. In-memory cache
2. System keyring (GNOME Keyring, macOS Keychain, Windows Credential Locker)
3. Environment variables (SERVICE_USERNAME, SERVICE_PASSWORD, SERVICE_KEY_DATA)

Each service is stored as a single keyring entry holding JSON, so
username, password and private key text travel together.

Example:
    from cosmic.credentials import CredentialManager

    creds = CredentialManager()

    # Store credentials (one-time setup)
    creds.set_credentials("build-hosts", "deploy", key_data=key_text)

    # Retrieve them as an auth mapping
    auth = creds.get_auth("build-hosts")
"""

import concurrent.futures
import json
import logging
import os
import sys

logger = logging.getLogger(__name__)

# Service name prefix for all cosmic credentials
SERVICE_PREFIX = "cosmic"

CREDENTIAL_FIELDS = ("username", "password", "key_data")


class CredentialManager:
    """Manage credentials using the system keyring with fallbacks.

    Credentials found once are cached in-memory (class-level) so they
    persist across CredentialManager instances within the same process.
    """

    # Timeout for keyring operations (seconds)
    KEYRING_TIMEOUT = 3

    # Class-level in-memory credential cache: {service: {field: value}}
    _memory_cache: dict[str, dict[str, str]] = {}

    def __init__(self, use_keyring: bool | None = None) -> None:
        """Initialize credential manager.

        Args:
            use_keyring: Force keyring usage on or off; auto-detected if None
        """
        if use_keyring is None:
            use_keyring = self._check_keyring()
        self._keyring_available = use_keyring

    @property
    def keyring_available(self) -> bool:
        return self._keyring_available

    def _check_keyring(self) -> bool:
        """Check if keyring is available and functional.

        Returns False (disables keyring) in these cases:
        - PYTHON_KEYRING_BACKEND=keyring.backends.null.Keyring (explicit disable)
        - No DISPLAY and no DBUS_SESSION_BUS_ADDRESS on Linux (headless server)
        - Keyring resolves to a fail/null backend
        - Keyring backend check times out
        """
        if os.environ.get("PYTHON_KEYRING_BACKEND") == "keyring.backends.null.Keyring":
            logger.info("Keyring explicitly disabled via PYTHON_KEYRING_BACKEND")
            return False

        if sys.platform == "linux":
            if not os.environ.get("DISPLAY") and not os.environ.get(
                "DBUS_SESSION_BUS_ADDRESS"
            ):
                logger.info(
                    "Headless Linux detected (no DISPLAY/DBUS) - using env vars."
                )
                return False

        def _do_check() -> bool:
            import keyring

            backend = keyring.get_keyring()
            logger.debug("Keyring backend: %s", backend)
            backend_module = type(backend).__module__ or ""
            if "fail" in backend_module or "null" in backend_module:
                logger.info(
                    "No usable keyring backend (got %s) - using env vars.",
                    backend_module,
                )
                return False
            return True

        try:
            with concurrent.futures.ThreadPoolExecutor(max_workers=1) as executor:
                future = executor.submit(_do_check)
                return future.result(timeout=self.KEYRING_TIMEOUT)
        except concurrent.futures.TimeoutError:
            logger.warning(
                "Keyring check timed out after %ds - D-Bus/SecretService may be "
                "unresponsive. Using environment variables instead.",
                self.KEYRING_TIMEOUT,
            )
            return False
        except Exception as e:
            logger.warning("Keyring not available: %s", e)
            return False

    def _service_name(self, service: str) -> str:
        """Generate full service name for keyring."""
        return f"{SERVICE_PREFIX}/{service}"

    def _env_var_name(self, service: str, key: str) -> str:
        """Generate environment variable name.

        e.g., "build-hosts" + "password" -> "BUILD_HOSTS_PASSWORD"
        """
        service_upper = service.upper().replace("-", "_").replace("/", "_")
        return f"{service_upper}_{key.upper()}"

    def _keyring_op(self, func, *args, **kwargs):
        """Run a keyring operation with timeout.

        Prevents blocking when the keyring prompts for an unlock password.

        Returns:
            Result of func, or None on timeout/error
        """
        try:
            with concurrent.futures.ThreadPoolExecutor(max_workers=1) as executor:
                future = executor.submit(func, *args, **kwargs)
                return future.result(timeout=self.KEYRING_TIMEOUT)
        except concurrent.futures.TimeoutError:
            logger.warning(
                "Keyring operation timed out after %ds - may need unlock. "
                "See: cosmic credentials get",
                self.KEYRING_TIMEOUT,
            )
            return None
        except Exception as e:
            logger.debug("Keyring operation failed: %s", e)
            return None

    def set_credentials(
        self,
        service: str,
        username: str | None = None,
        password: str | None = None,
        key_data: str | None = None,
    ) -> bool:
        """Store credentials in keyring.

        Returns:
            True if stored successfully, False otherwise
        """
        if not self._keyring_available:
            logger.error("Keyring not available. Cannot store credentials.")
            return False

        import keyring

        fields = {"username": username, "password": password, "key_data": key_data}
        creds = {k: v for k, v in fields.items() if v}
        payload = json.dumps(creds)
        name = self._service_name(service)

        def _set():
            keyring.set_password(name, "credentials", payload)
            return True

        if not self._keyring_op(_set):
            logger.error("Failed to store credentials for %s", service)
            return False

        self._memory_cache[service] = creds
        logger.info("Stored credentials for %s in keyring", service)
        return True

    def get_credentials(self, service: str) -> dict[str, str] | None:
        """Retrieve credentials with fallback chain.

        Returns:
            Mapping with any of username, password, key_data; None if
            nothing is available
        """
        if service in self._memory_cache:
            logger.debug("Retrieved credentials from memory cache for %s", service)
            return dict(self._memory_cache[service])

        if self._keyring_available:
            import keyring

            name = self._service_name(service)

            def _get():
                return keyring.get_password(name, "credentials")

            creds_json = self._keyring_op(_get)
            if creds_json:
                try:
                    data = json.loads(creds_json)
                except json.JSONDecodeError as e:
                    logger.debug("Invalid credentials JSON: %s", e)
                else:
                    creds = {k: data[k] for k in CREDENTIAL_FIELDS if data.get(k)}
                    if creds:
                        logger.debug("Retrieved credentials from keyring for %s", service)
                        self._memory_cache[service] = creds
                        return dict(creds)

        creds = {}
        for key in CREDENTIAL_FIELDS:
            if value := os.environ.get(self._env_var_name(service, key)):
                creds[key] = value
        if creds:
            logger.debug("Retrieved credentials from environment for %s", service)
            self._memory_cache[service] = creds
            return dict(creds)

        return None

    def get_auth(self, service: str) -> dict[str, str]:
        """Return credentials for a service as an auth mapping (empty if none)."""
        return self.get_credentials(service) or {}

    def has_credentials(self, service: str) -> bool:
        """Check if credentials exist for a service."""
        return self.get_credentials(service) is not None

    def delete_credentials(self, service: str) -> bool:
        """Delete stored credentials from keyring and the memory cache.

        Returns:
            True if a keyring entry was deleted
        """
        self._memory_cache.pop(service, None)
        if not self._keyring_available:
            return False

        import keyring
        from keyring.errors import PasswordDeleteError

        name = self._service_name(service)

        def _delete():
            try:
                keyring.delete_password(name, "credentials")
            except PasswordDeleteError:
                return False
            return True

        deleted = bool(self._keyring_op(_delete))
        if deleted:
            logger.info("Deleted credentials for %s", service)
        return deleted

    @classmethod
    def clear_cache(cls) -> None:
        """Forget all credentials cached in this process."""
        cls._memory_cache.clear()
