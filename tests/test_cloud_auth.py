from __future__ import annotations

from types import SimpleNamespace

import pytest
from fastapi import HTTPException, status

from cloud.api.auth import Principal, principal_dependency


def _request(api_key: str | None = None) -> SimpleNamespace:
    return SimpleNamespace(app=SimpleNamespace(state=SimpleNamespace(api_key=api_key)))


@pytest.mark.asyncio
async def test_principal_dependency_normalises_input() -> None:
    principal = await principal_dependency(
        request=_request(),
        project="  shop-1 ",
        roles_header="Device, viewer ,DEVICE",
        authorization=None,
    )
    assert principal.project_id == "shop-1"
    assert principal.roles == {"device", "viewer"}


@pytest.mark.asyncio
async def test_principal_defaults_to_viewer() -> None:
    principal = await principal_dependency(request=_request(), project="shop-1", roles_header=None, authorization=None)
    assert principal.roles == {"viewer"}
    with pytest.raises(HTTPException) as exc:
        principal.require("admin", "device")
    assert exc.value.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.asyncio
async def test_principal_dependency_requires_project() -> None:
    with pytest.raises(HTTPException) as exc:
        await principal_dependency(request=_request(), project="   ", roles_header=None, authorization=None)
    assert exc.value.status_code == status.HTTP_400_BAD_REQUEST
    assert exc.value.detail["error"] == "invalid_project"


@pytest.mark.asyncio
async def test_bearer_token_checked_when_configured() -> None:
    with pytest.raises(HTTPException) as exc:
        await principal_dependency(
            request=_request("secret"), project="shop-1", roles_header=None, authorization="Token secret"
        )
    assert exc.value.status_code == status.HTTP_401_UNAUTHORIZED
    principal = await principal_dependency(
        request=_request("secret"), project="shop-1", roles_header="admin", authorization="Bearer secret"
    )
    assert principal == Principal(project_id="shop-1", roles={"admin"})
