from fastapi.security import HTTPBearer

# HTTP Bearer authentication scheme for the session tokens of the static users
bearer_user = HTTPBearer(scheme_name="User HTTPBearer")
