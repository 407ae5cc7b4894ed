"""
HTTP session with connection pooling and automatic retry on gateway errors.

Retries here cover a single request only (502/503/504 from a proxy in
front of the controller). Retrying a failed check-in is the loop's job.
"""

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

_retry_strategy = Retry(
    total=3,
    backoff_factor=1,                           # Wait 1s, 2s, 4s between retries
    status_forcelist=[502, 503, 504],
    allowed_methods=["POST"],
    raise_on_status=False,
)


def create_session(verify=True):
    """Create a new requests.Session with connection pooling and retry."""
    session = requests.Session()
    adapter = HTTPAdapter(
        pool_connections=1,
        pool_maxsize=2,
        max_retries=_retry_strategy,
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.verify = verify
    return session


def reset_session(session):
    """Close and recreate the HTTP session (fixes stale connections)."""
    verify = session.verify
    session.close()
    return create_session(verify=verify)
