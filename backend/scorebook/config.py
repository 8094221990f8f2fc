import os


def _canon_prefix(val):
    """
    Normalize API prefix to always be exactly like '/api':
      - defaults to '/api' when unset/empty
      - ensures a single leading slash
      - removes any trailing slash (except for root)
    """
    val = (val or "/api").strip()
    if not val.startswith("/"):
        val = "/" + val
    if len(val) > 1 and val.endswith("/"):
        val = val[:-1]
    return val


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


API_PREFIX = _canon_prefix(os.getenv("API_PREFIX"))

# Stats views are recomputed from the ledger; the cache only absorbs bursts of
# identical reads between ledger mutations.
STATS_CACHE_TTL_SECONDS = _env_float("STATS_CACHE_TTL_SECONDS", 30.0)

RECORD_ACTION_RATE_LIMIT = os.getenv("RECORD_ACTION_RATE_LIMIT", "120/minute")

SETS_PER_MATCH = 5


def allowed_origins() -> list[str]:
    """Parse ``ALLOWED_ORIGINS``; an unset, empty or wildcard list is a startup error."""

    raw = os.getenv("ALLOWED_ORIGINS", "").strip()
    origins = [o.strip() for o in raw.split(",") if o.strip()]
    if not origins:
        raise ValueError(
            "ALLOWED_ORIGINS must be a comma-separated list of trusted origins."
        )
    if "*" in origins:
        raise ValueError(
            "ALLOWED_ORIGINS cannot include '*' (wildcard). Specify explicit, trusted origins."
        )
    return origins
