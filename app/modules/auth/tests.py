"""
Tests para la identidad del actor en las peticiones
"""

import jwt
import pytest
from datetime import timedelta

from app.modules.auth.schemas import AuthContext, UserRole
from app.modules.auth.utils import create_access_token, SECRET_KEY, ALGORITHM


def _bearer(token):
    return {"Authorization": f"Bearer {token}"}


class TestAuthContext:

    @pytest.mark.parametrize("role,expected", [
        (UserRole.CAJERO, False),
        (UserRole.SUPERVISOR, True),
        (UserRole.ADMIN, True),
    ])
    def test_is_supervisor(self, role, expected):
        context = AuthContext(user_id="u-1", user_name="Usuario", user_role=role)
        assert context.is_supervisor is expected


class TestTokenValidation:
    """Sin identidad válida la petición se rechaza con 401"""

    URL = "/api/v1/config/exchange-rate"

    def test_missing_token(self, client):
        assert client.get(self.URL).status_code == 401

    def test_invalid_signature(self, client):
        token = jwt.encode({"sub": "cajero-1", "name": "Ana", "role": "cajero"}, "otra-clave", algorithm=ALGORITHM)
        assert client.get(self.URL, headers=_bearer(token)).status_code == 401

    def test_expired_token(self, client):
        token = create_access_token(
            {"sub": "cajero-1", "name": "Ana", "role": "cajero"},
            expires_delta=timedelta(minutes=-1)
        )
        assert client.get(self.URL, headers=_bearer(token)).status_code == 401

    @pytest.mark.parametrize("claims", [
        {"name": "Ana", "role": "cajero"},
        {"sub": "cajero-1", "role": "cajero"},
        {"sub": "cajero-1", "name": "Ana"},
        {"sub": "cajero-1", "name": "Ana", "role": "gerente"},
    ])
    def test_incomplete_identity(self, client, claims):
        token = create_access_token(claims)
        assert client.get(self.URL, headers=_bearer(token)).status_code == 401

    def test_non_access_token(self, client):
        token = jwt.encode(
            {"sub": "cajero-1", "name": "Ana", "role": "cajero", "type": "refresh"},
            SECRET_KEY, algorithm=ALGORITHM
        )
        assert client.get(self.URL, headers=_bearer(token)).status_code == 401


class TestRoles:

    def test_cashier_cannot_close_turno(self, client, open_turno, cashier_headers):
        response = client.post(
            f"/api/v1/turnos/{open_turno.id}/close",
            headers=cashier_headers,
            json={"counted_cash_bs": "100", "counted_cash_usd": "20"}
        )
        assert response.status_code == 403

    def test_supervisor_cannot_sell(self, client, supervisor_headers):
        response = client.post("/api/v1/sales", headers=supervisor_headers, json={})
        assert response.status_code == 403
