"""Pure-function URL builder for dated listing searches.

The scrape service expects the exact parameter order and duplication the
search site itself produces, so the query string is assembled by hand
rather than through ``urlencode``.
"""

from __future__ import annotations

from urllib.parse import quote

from airsweep.models import DateWindow, Job

# ``[]`` and ``:`` are percent-encoded the way the site encodes them.
_FILTER_ORDER = "selected_filter_order%5B%5D"
_AMENITIES = "amenities%5B%5D"


def _value(v: object) -> str:
    return quote(str(v), safe="")


def build_query_url(job: Job, window: DateWindow) -> str:
    """Append the job's filters and the window's dates to its URL template."""
    parts: list[str] = [job.url_template]

    # amenity filter-order markers first, then the amenity values
    for code in job.amenities:
        parts.append(f"&{_FILTER_ORDER}=amenities%3A{_value(code)}")
    for code in job.amenities:
        parts.append(f"&{_AMENITIES}={_value(code)}")

    parts.append(f"&adults={job.adults}")
    parts.append(f"&min_bedrooms={job.min_bedrooms}")
    parts.append(f"&{_FILTER_ORDER}=min_bedrooms%3A{job.min_bedrooms}")

    parts.append(f"&checkin={window.checkin_str}")
    parts.append(f"&checkout={window.checkout_str}")

    if job.price_max is not None:
        parts.append(f"&price_max={job.price_max}")

    return "".join(parts)
