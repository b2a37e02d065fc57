import secrets

from fastapi import Depends
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from .config import get_settings
from .exceptions import AuthenticationError

# auto_error=False so a missing header gets the same 401 body as a bad one
security = HTTPBasic(auto_error=False)


def authenticate_user(username: str, password: str):
    # Users come from API_USERS; read per call so rotations apply immediately
    expected = get_settings().api_users.get(username)
    if expected is None:
        return False
    if not secrets.compare_digest(password.encode("utf-8"), expected.encode("utf-8")):
        return False
    return {"username": username}


def get_current_owner(credentials: HTTPBasicCredentials = Depends(security)) -> str:
    """Owner id for the request. Everything downstream trusts it as-is."""
    if credentials is None:
        raise AuthenticationError()
    user = authenticate_user(credentials.username, credentials.password)
    if not user:
        raise AuthenticationError()
    return user["username"]
