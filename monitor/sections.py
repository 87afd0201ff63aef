"""Section extraction from an access-log request line.

A section is the first path segment of the request:
``"GET /api/user HTTP/1.0"`` -> ``"/api"``, ``"GET /report HTTP/1.0"`` ->
``"/report"``.  Requests with no path segment yield ``""``.
"""

import re

REQUEST_FIELD = "request"

# Optional leading space and method, then the path's first segment.
# Anchored so the protocol ("HTTP/1.0") is never mistaken for a section,
# and an absolute URI ("http://host/api") has no section.
_SECTION_RE = re.compile(r"^\s*(?:\S+\s+)?(/[^/\s]+)")


def extract_section(request: str) -> str:
    match = _SECTION_RE.match(request)
    return match.group(1) if match else ""
