"""Internal constants shared across the library."""

API_URL = "https://p1payapi.tst.protocol.one"
WEBSOCKET_URL = "wss://cf.tst.protocol.one/connection/websocket"
USER_AGENT = "pypaysuper"

ADMIN_API_PREFIX = "/admin/api/v1"
PUBLIC_API_PREFIX = "/api/v1"

#: Server code for "sku + project id already exist".
DUPLICATE_KEY_CODES: frozenset[str] = frozenset({"kp000006"})

#: Channel name prefix; the merchant id is appended after ``#``.
MERCHANT_CHANNEL_PREFIX = "paysuper:merchant#"

# ------------------------------------------------------------------
# Project currency selection
# ------------------------------------------------------------------

PROJECT_CURRENCIES_STORAGE_KEY = "projectCurrencies"
DEFAULT_CURRENCY = "USD"
CURRENCY_REGION_SEPARATOR = "-"

NEW_RECORD_ID = "new"


def merchant_channel(merchant_id: str) -> str:
    """Return the publish/subscribe channel name for *merchant_id*."""
    return f"{MERCHANT_CHANNEL_PREFIX}{merchant_id}"
