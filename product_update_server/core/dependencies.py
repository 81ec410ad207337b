from pathlib import Path
from typing import Optional
import logging
import os

from product_update_server.services.access_oracle import (
    AccessOracle,
    JsonAccessOracle,
    WooCommerceAccessOracle,
)
from product_update_server.services.catalog import (
    CatalogAdapter,
    JsonCatalogAdapter,
    WooCommerceCatalogAdapter,
)
from product_update_server.services.update_server import UpdateServer
from product_update_server.services.woocommerce import WooCommerceClient
from product_update_server.storage.json_cache_store import JsonCacheStore

logger = logging.getLogger(__name__)

DATA_ROOT_ENV_VAR = "PRODUCT_UPDATE_SERVER_DATA_DIR"
ADMIN_TOKEN_ENV_VAR = "PRODUCT_UPDATE_SERVER_ADMIN_TOKEN"
REFRESH_POLL_ENV_VAR = "PRODUCT_UPDATE_SERVER_REFRESH_POLL_SECONDS"
WOOCOMMERCE_URL_ENV_VAR = "WOOCOMMERCE_URL"
WOOCOMMERCE_KEY_ENV_VAR = "WOOCOMMERCE_CONSUMER_KEY"
WOOCOMMERCE_SECRET_ENV_VAR = "WOOCOMMERCE_CONSUMER_SECRET"
WOOCOMMERCE_MEMBERSHIPS_ENV_VAR = "WOOCOMMERCE_MEMBERSHIPS"

_REPO_ROOT = Path(__file__).resolve().parents[2]
_DEFAULT_DATA_DIR = _REPO_ROOT / "data"

_update_server: Optional[UpdateServer] = None


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes", "on")


def get_data_dir() -> Path:
    env_path = os.environ.get(DATA_ROOT_ENV_VAR)
    if env_path:
        d = Path(env_path).expanduser()
    else:
        d = _DEFAULT_DATA_DIR
    d.mkdir(parents=True, exist_ok=True)
    return d


def get_admin_token() -> str:
    return os.environ.get(ADMIN_TOKEN_ENV_VAR, "")


def get_refresh_poll_seconds() -> float:
    raw = os.environ.get(REFRESH_POLL_ENV_VAR)
    if not raw:
        return 60.0
    try:
        return max(1.0, float(raw))
    except ValueError:
        logger.warning(f"Ignoring invalid {REFRESH_POLL_ENV_VAR}={raw!r}")
        return 60.0


def _build_backends(data_dir: Path) -> tuple[CatalogAdapter, AccessOracle]:
    base_url = os.environ.get(WOOCOMMERCE_URL_ENV_VAR, "").strip()
    if not base_url:
        return JsonCatalogAdapter(data_dir), JsonAccessOracle(data_dir)

    client = WooCommerceClient(
        base_url,
        consumer_key=os.environ.get(WOOCOMMERCE_KEY_ENV_VAR, ""),
        consumer_secret=os.environ.get(WOOCOMMERCE_SECRET_ENV_VAR, ""),
    )
    logger.info(f"Using WooCommerce backend at {client.base_url}")
    oracle = WooCommerceAccessOracle(
        client, memberships_enabled=_env_flag(WOOCOMMERCE_MEMBERSHIPS_ENV_VAR)
    )
    return WooCommerceCatalogAdapter(client), oracle


def create_update_server(data_dir: Optional[Path] = None) -> UpdateServer:
    data_dir = data_dir or get_data_dir()
    catalog, oracle = _build_backends(data_dir)
    return UpdateServer(catalog=catalog, oracle=oracle, store=JsonCacheStore(data_dir))


def get_update_server() -> UpdateServer:
    global _update_server
    if _update_server is None:
        _update_server = create_update_server()
    return _update_server
