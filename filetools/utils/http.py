from typing import Optional

import httpx


def content_length(response: httpx.Response) -> Optional[int]:
    """Declared body size, None when absent or malformed."""
    value = response.headers.get('content-length')
    return int(value) if value and value.isdigit() else None
