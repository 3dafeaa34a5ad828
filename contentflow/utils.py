import logging
import re

from fastapi import HTTPException, Request, status

logger = logging.getLogger(__name__)

# opaque caller ids: uuids, auth-provider subjects, test handles
_USER_ID_RE = re.compile(r"^[A-Za-z0-9_.:@|-]{1,64}$")


# Dependency to enforce a caller identity on every API route
async def require_authenticated_user(request: Request) -> str:
    header = request.app.state.settings.USER_HEADER
    user_id = (request.headers.get(header) or "").strip()
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    if not _USER_ID_RE.match(user_id):
        logger.warning("Rejected malformed %s header", header)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return user_id
