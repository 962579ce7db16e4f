"""Security dependencies and API access logging"""
import json
import logging
from datetime import datetime, timezone
from typing import Optional
from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from orphancare.core.errors import ForbiddenError
from orphancare.db.redis import get_session
from orphancare.db.session import get_db
from orphancare.models.user import User

security_logger = logging.getLogger("security")
api_access_logger = logging.getLogger("api_access")


def get_bearer_token(request: Request) -> Optional[str]:
    """Extract the token from an `Authorization: Bearer <token>` header"""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    token = auth_header[len("Bearer "):].strip()
    return token or None


def require_auth(request: Request) -> int:
    """Dependency: Require a valid bearer credential, return user_id"""
    token = get_bearer_token(request)

    if not token:
        raise HTTPException(401, "Unauthorized - No token provided")

    user_id = get_session(token)
    if not user_id:
        security_logger.warning(
            f"Rejected bearer token - IP: {request.client.host if request.client else 'unknown'}, "
            f"Path: {request.url.path}"
        )
        raise HTTPException(401, "Unauthorized - Invalid token")

    return user_id


def require_admin(
    user_id: int = Depends(require_auth),
    db: Session = Depends(get_db)
) -> int:
    """Dependency: Require an authenticated admin, return user_id"""
    user = db.query(User).filter(User.id == user_id).first()
    if not user or not user.is_admin:
        security_logger.warning(f"Admin access denied - User: {user_id}")
        raise ForbiddenError("Forbidden - Insufficient permissions")
    return user_id


def log_api_access(
    request: Request,
    status_code: int = 200,
    error: Optional[str] = None
):
    """Log detailed API access information"""
    client_ip = request.headers.get("X-Forwarded-For", "").split(",")[0].strip()
    if not client_ip:
        client_ip = request.client.host if request.client else "unknown"

    log_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "method": request.method,
        "path": request.url.path,
        "query": str(request.url.query) if request.url.query else None,
        "authenticated": get_bearer_token(request) is not None,
        "client_ip": client_ip,
        "user_agent": request.headers.get("User-Agent", "unknown"),
        "status_code": status_code,
        "error": error
    }

    if error or status_code >= 400:
        api_access_logger.warning(f"API Access: {json.dumps(log_data)}")
    else:
        api_access_logger.info(f"API Access: {json.dumps(log_data)}")
