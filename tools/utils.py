"""Shared HTTP helpers for outbound page fetches."""

import ssl

import certifi

USER_AGENT = (
    "Mozilla/5.0 (compatible; DailyDigestBot/1.0; "
    "+https://github.com/daily-digest/summarizer)"
)

# Sent with every article page request
PAGE_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "text/html,application/xhtml+xml;q=0.9,*/*;q=0.5",
}


def create_ssl_context(verify: bool = True) -> ssl.SSLContext:
    """Create SSL context with optional certificate verification.

    Args:
        verify: If True, verify against the certifi bundle.
                If False, disable verification (retry path for broken servers).
    """
    if verify:
        return ssl.create_default_context(cafile=certifi.where())
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx
