"""Tests for the session test user lifecycle."""
from __future__ import annotations

import pytest

from nutriapp_tests.api_client import ApiResponse, NutriAppApiClient
from nutriapp_tests.config import settings
from nutriapp_tests.errors import ProvisioningError
from nutriapp_tests.fixtures import generate_user_fixture
from nutriapp_tests.session_user import (
    ProvisioningState,
    SessionUserManager,
    fixed_identity,
)

pytestmark = pytest.mark.asyncio


@pytest.fixture
def manager(mock_api):
    return SessionUserManager(mock_api)


class TestIdentity:

    async def test_identity_is_generated_once(self, manager):
        assert manager.state is None

        first = manager.get_or_create_identity()
        second = manager.get_or_create_identity()

        assert first is second
        assert first.email.startswith("session-")
        assert manager.state is ProvisioningState.NEEDS_CREATION


class TestEnsureProvisioned:

    async def test_registers_and_verifies(self, manager, mock_nutriapp_server):
        context = await manager.ensure_provisioned()

        assert manager.state is ProvisioningState.READY
        assert context.identity is manager.get_or_create_identity()
        assert context.base_url == mock_nutriapp_server.url
        assert context.identity.email in mock_nutriapp_server.state.users

    async def test_second_call_is_cached(self, manager, mock_api, mock_nutriapp_server):
        first = await manager.ensure_provisioned()
        last = mock_api.last_response

        second = await manager.ensure_provisioned()

        assert second is first
        assert mock_api.last_response is last
        assert len(mock_nutriapp_server.state.users) == 1

    async def test_existing_account_is_accepted(self, mock_api, mock_nutriapp_server):
        identity = generate_user_fixture(prefix="session")
        mock_nutriapp_server.state.seed_user(identity.to_payload())
        manager = SessionUserManager(mock_api, identity=identity)

        context = await manager.ensure_provisioned()

        assert context.identity is identity
        assert manager.state is ProvisioningState.READY

    async def test_failed_verification_raises_and_resets(self, mock_api):
        identity = fixed_identity("missing@nutriapp.com", "secret")
        manager = SessionUserManager(mock_api, identity=identity, preregistered=True)

        with pytest.raises(ProvisioningError, match="Verification login"):
            await manager.ensure_provisioned()

        assert manager.state is ProvisioningState.NEEDS_CREATION

    async def test_unreachable_backend_raises_provisioning_error(self):
        api = NutriAppApiClient(base_url="http://127.0.0.1:1", timeout=1.0)
        manager = SessionUserManager(api)

        with pytest.raises(ProvisioningError, match="Could not reach"):
            await manager.ensure_provisioned()

        assert manager.state is ProvisioningState.NEEDS_CREATION

    async def test_reentrant_provisioning_is_refused(self):
        class ReentrantApi:
            base_url = "http://unused"

            def __init__(self):
                self.manager = None
                self.nested_error = None

            async def register(self, identity):
                try:
                    await self.manager.ensure_provisioned()
                except ProvisioningError as exc:
                    self.nested_error = exc
                return ApiResponse(status=500, body={"error": "boom"})

        api = ReentrantApi()
        manager = SessionUserManager(api)
        api.manager = manager

        with pytest.raises(ProvisioningError, match="Registration"):
            await manager.ensure_provisioned()

        assert "already in progress" in str(api.nested_error)


class TestReprovision:

    async def test_reprovision_of_existing_user_reports_conflict(self, manager):
        await manager.ensure_provisioned()

        response = await manager.reprovision()

        assert response.status == 409
        assert manager.state is ProvisioningState.READY

    async def test_reprovision_does_not_mark_unprovisioned_user_ready(self, manager):
        response = await manager.reprovision()

        assert response.ok
        assert manager.state is ProvisioningState.NEEDS_CREATION

    async def test_reprovision_skips_preregistered_account(self, mock_api, mock_nutriapp_server, monkeypatch):
        identity = generate_user_fixture(prefix="fixed")
        mock_nutriapp_server.state.seed_user(identity.to_payload())

        async def no_register(user):
            raise AssertionError("pre-registered accounts must not be registered again")

        monkeypatch.setattr(mock_api, "register", no_register)
        manager = SessionUserManager(mock_api, identity=identity, preregistered=True)
        await manager.ensure_provisioned()

        assert await manager.reprovision() is None
        assert manager.state is ProvisioningState.READY


class TestFromSettings:

    async def test_generated_user_by_default(self, mock_api, monkeypatch):
        monkeypatch.setattr(settings, "fixed_user_email", None)
        manager = SessionUserManager.from_settings(mock_api)
        assert manager.state is None

    async def test_fixed_user_from_environment(self, mock_api, mock_nutriapp_server, monkeypatch):
        identity = generate_user_fixture(prefix="fixed")
        mock_nutriapp_server.state.seed_user(identity.to_payload())
        monkeypatch.setattr(settings, "fixed_user_email", identity.email)
        monkeypatch.setattr(settings, "fixed_user_password", identity.password)

        async def no_register(user):
            raise AssertionError("pre-registered accounts must not be registered again")

        monkeypatch.setattr(mock_api, "register", no_register)

        manager = SessionUserManager.from_settings(mock_api)
        context = await manager.ensure_provisioned()

        assert context.identity.email == identity.email
        assert context.identity.password == identity.password
