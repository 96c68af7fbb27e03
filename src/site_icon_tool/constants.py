"""Constants and default values used across the application."""

# HTTP Constants
DEFAULT_HTTP_TIMEOUT = 10.0  # Final icon download timeout in seconds
DEFAULT_DISCOVERY_TIMEOUT = 5.0  # Document, manifest and browserconfig fetches
DEFAULT_VALIDATION_TIMEOUT = 5.0  # Existence probe and peek fetches
DEFAULT_HTTP_MAX_REDIRECTS = 10  # Maximum number of redirects to follow

# Browser identities used when talking to target sites
DESKTOP_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)
MOBILE_USER_AGENT = (
    "Mozilla/5.0 (Linux; Android 14; Pixel 8) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Mobile Safari/537.36"
)
IOS_USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_4 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.4 Mobile/15E148 Safari/604.1"
)
ANDROID_CHROME_USER_AGENT = MOBILE_USER_AGENT
WINDOWS_CHROME_USER_AGENT = DESKTOP_USER_AGENT

# Validation Constants
DEFAULT_VALIDATE_TOP_K = 5  # Only the best K discovered candidates are probed
DEFAULT_PEEK_BYTES = 512  # Size of the ranged GET used to sniff redirected icons

# Cache Constants
DEFAULT_CACHE_CAPACITY = 1000
DEFAULT_CACHE_TTL = 3600  # Main tier TTL in seconds (TTI is twice this)
DEFAULT_EXPIRED_TTL = 3 * 24 * 3600  # Stale fallback ceiling: 3 days
DEFAULT_REFRESH_WORKERS = 4

# Cache-Control max-age values (seconds)
MAX_AGE_FRESH_HIT = 7200
MAX_AGE_STALE = 600
MAX_AGE_NEW = 3600

# Well-known icon locations emitted without any network check
# Format: (path, content_type, size, purpose)
WELL_KNOWN_ICONS = [
    ("/favicon.ico", "image/x-icon", 16, None),
    ("/apple-touch-icon.png", "image/png", 180, "apple-touch-icon"),
    ("/apple-touch-icon-precomposed.png", "image/png", 180, "apple-touch-icon"),
]

# Manifest locations tried when the document does not declare one
DEFAULT_MANIFEST_PATHS = ["/manifest.json", "/site.webmanifest"]

# Common static icon paths probed when none of the top candidates validate
COMMON_ICON_PATHS = [
    "/favicon.png",
    "/favicon.svg",
    "/icon.svg",
    "/favicon-16x16.png",
    "/favicon-32x32.png",
    "/favicon-96x96.png",
    "/favicon-192x192.png",
    "/apple-icon.png",
    "/apple-icon-57x57.png",
    "/apple-icon-60x60.png",
    "/apple-icon-72x72.png",
    "/apple-icon-76x76.png",
    "/apple-icon-114x114.png",
    "/apple-icon-120x120.png",
    "/apple-icon-144x144.png",
    "/apple-icon-152x152.png",
    "/apple-icon-180x180.png",
    "/apple-touch-icon-152x152.png",
    "/apple-touch-icon-180x180.png",
    "/android-chrome-192x192.png",
    "/android-chrome-512x512.png",
    "/android-icon-192x192.png",
    "/mstile-70x70.png",
    "/mstile-144x144.png",
    "/mstile-150x150.png",
    "/mstile-310x310.png",
]
