import base64, json, logging, requests
from requests import Response

from bilty.src.constants import (
    OPENOBSERVE_ENABLED,
    OPENOBSERVE_HOST,
    OPENOBSERVE_ORG,
    OPENOBSERVE_PASSWORD,
    OPENOBSERVE_PORT,
    OPENOBSERVE_PROTOCOL,
    OPENOBSERVE_STREAM,
    OPENOBSERVE_TIMEOUT,
    OPENOBSERVE_USERNAME,
)

logger = logging.getLogger("uvicorn.error")

# Prepare Basic Auth credentials
credentials = base64.b64encode(
    bytes(OPENOBSERVE_USERNAME + ":" + OPENOBSERVE_PASSWORD, "utf-8")
).decode("utf-8")

# Default headers for all requests
headers = {"Content-type": "application/json", "Authorization": "Basic " + credentials}

# Construct OpenObserve endpoint URL
openobserve_host = f"{OPENOBSERVE_PROTOCOL}://{OPENOBSERVE_HOST}:{OPENOBSERVE_PORT}"
openobserve_url = f"{openobserve_host}/api/{OPENOBSERVE_ORG}/{OPENOBSERVE_STREAM}/_json"


def logEvent(eventData: dict) -> Response | None:
    """
    Send an audit event to the configured OpenObserve stream.

    The event is serialized as JSON and posted with Basic authentication.
    An unreachable sink is reported on the local logger and otherwise
    ignored, the audited request has already been committed.

    Args:
        eventData (dict): The event to be sent.
            Example:
                {
                    "_method": "POST",
                    "_path": "/bilty",
                    "_user_email": "admin@bilty.com",
                    "_role": 1,
                    "bilty_number": "BLT4821377F3A09C2E"
                }

    Returns:
        requests.Response | None: The response of the OpenObserve API,
        or None when the sink is disabled or unreachable.
    """
    if not OPENOBSERVE_ENABLED:
        return None
    try:
        return requests.post(
            openobserve_url,
            headers=headers,
            data=json.dumps(eventData, default=str),
            timeout=OPENOBSERVE_TIMEOUT,
        )
    except requests.RequestException as e:
        logger.warning(f"Unable to send event to OpenObserve: {e}")
        return None
