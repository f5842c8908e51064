from bilty.src.db import UserToken
from bilty.src import openobserve
from bilty.src.schemas import RequestInfo


def logEvent(token: UserToken, requestInfo: RequestInfo, data: dict) -> None:
    """
    Log an audit event to OpenObserve with request and user context.

    Args:
        token (UserToken): Session of the user performing the action.
        requestInfo (RequestInfo): Metadata about the current request.
        data (dict): Event-specific details, usually the serialized entity.

    Notes:
        - Automatically attaches `_method`, `_path`, `_user_email` and `_role`.
    """
    logDetails = {
        "_method": requestInfo.method,
        "_path": requestInfo.path,
        "_user_email": token.email,
        "_role": token.role,
    }
    logDetails.update(data)
    openobserve.logEvent(logDetails)
