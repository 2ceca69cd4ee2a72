from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

# Route decorators are evaluated at import time, so the limiter and the
# per-route limits come from the process settings.
_settings = get_settings()


# ============================================================================
# Rate Limiter Setup
# ============================================================================
# In-memory storage by default; point RATE_LIMIT_STORAGE_URI at redis:// to
# share counters between workers.
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=_settings.rate_limit_storage_uri,
    enabled=_settings.rate_limit_enabled,
)

LOGIN_LIMIT = _settings.rate_limit_login
REGISTER_LIMIT = _settings.rate_limit_register
PASSWORD_RESET_LIMIT = _settings.rate_limit_password_reset
TOKEN_REFRESH_LIMIT = _settings.rate_limit_token_refresh
