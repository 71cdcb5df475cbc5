# cardbasket/utils.py
import math
import uuid

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

RETRY_STATUSES = (429, 500, 502, 503, 504)


def truncate_url(url, max_length=50):
    if len(url) <= max_length:
        return url
    return url[:max_length] + "..."


# Function to generate a unique file name
def generate_unique_filename(original_filename):
    unique_id = uuid.uuid4().hex
    if '.' in original_filename:
        name, extension = original_filename.rsplit('.', 1)
        return f"{name}_{unique_id}.{extension}"
    else:
        return f"{original_filename}_{unique_id}"


def parse_amount(value, default=0.0):
    """Money field from an API payload; anything that is not a finite number counts as ``default``."""
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(amount):
        return default
    return amount


def build_session(retries=3, backoff_factor=0.5):
    """requests session that retries throttled and 5xx GETs."""
    session = requests.Session()
    retry = Retry(
        total=retries,
        backoff_factor=backoff_factor,
        status_forcelist=RETRY_STATUSES,
        allowed_methods=frozenset(["GET"]),
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session
