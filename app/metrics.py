from prometheus_client import Counter, Histogram

# Inbound webhook updates by routed kind.
UPDATE_TOTAL = Counter(
    "telegram_updates_total",
    "Total number of Telegram updates processed",
    ["kind"],
)

# Place info lookups served from memory vs. fetched upstream.
CACHE_LOOKUPS = Counter(
    "place_cache_lookups_total",
    "Place info cache lookups",
    ["result"],
)

# Inline search latency in seconds (candidate selection + cache resolution).
SEARCH_LATENCY = Histogram(
    "inline_search_latency_seconds",
    "Time spent answering an inline search query",
)

# Vote toggles by outcome (cast, undone, not_found, foreign_chat).
VOTE_TOTAL = Counter(
    "report_votes_total",
    "Total number of report vote callbacks",
    ["outcome"],
)

# Failed Telegram Bot API calls by method.
OUTBOUND_ERRORS = Counter(
    "telegram_outbound_errors_total",
    "Total number of failed Telegram Bot API calls",
    ["method"],
)
