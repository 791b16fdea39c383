from __future__ import annotations

import secrets
from dataclasses import dataclass

from fastapi import Header, HTTPException, Request, status

ROLE_ADMIN = "admin"
ROLE_DEVICE = "device"
ROLE_VIEWER = "viewer"

VALID_ROLES: set[str] = {ROLE_ADMIN, ROLE_DEVICE, ROLE_VIEWER}
WRITE_ROLES: tuple[str, ...] = (ROLE_ADMIN, ROLE_DEVICE)
READ_ROLES: tuple[str, ...] = (ROLE_ADMIN, ROLE_DEVICE, ROLE_VIEWER)


def _normalise_roles(roles_header: str | None) -> set[str]:
    if not roles_header:
        return set()
    roles: set[str] = set()
    for chunk in roles_header.split(","):
        role = chunk.strip().lower()
        if not role:
            continue
        roles.add(role)
    return roles


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


@dataclass(slots=True)
class Principal:
    project_id: str
    roles: set[str]

    def has_any(self, *required: str) -> bool:
        if not required:
            return True
        required_set = {role.lower() for role in required}
        return any(role in self.roles for role in required_set)

    def require(self, *required: str) -> None:
        if self.has_any(*required):
            return
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": "insufficient_role",
                "required": sorted({role.lower() for role in required}),
                "granted": sorted(self.roles),
            },
        )


async def principal_dependency(
    request: Request,
    project: str = Header(..., alias="X-Project-ID"),
    roles_header: str | None = Header(None, alias="X-Roles"),
    authorization: str | None = Header(None, alias="Authorization"),
) -> Principal:
    project_id = str(project).strip()
    if not project_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "invalid_project", "project": project},
        )
    expected_key = getattr(request.app.state, "api_key", None)
    if expected_key:
        token = _bearer_token(authorization)
        if token is None or not secrets.compare_digest(token, expected_key):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail={"error": "invalid_api_key"},
            )
    roles = _normalise_roles(roles_header)
    if not roles:
        roles = {ROLE_VIEWER}
    invalid = sorted(role for role in roles if role not in VALID_ROLES)
    if invalid:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "invalid_role", "roles": invalid},
        )
    return Principal(project_id=project_id, roles=roles)


__all__ = [
    "Principal",
    "READ_ROLES",
    "ROLE_ADMIN",
    "ROLE_DEVICE",
    "ROLE_VIEWER",
    "WRITE_ROLES",
    "principal_dependency",
]
