"""Tests for user management service."""

import pytest

from studiohub.adapters.auth.memory import InMemoryAuthRepository
from studiohub.core.auth.service import AuthResult, AuthService, RevokedSessionError
from studiohub.core.auth.types import User, UserRole, UserStatus
from studiohub.core.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from studiohub.core.users.service import (
    Actor,
    QuotaExceededError,
    RoleCheckMode,
    UserManagementService,
)

PASSWORD = "s3cret-pass"  # pragma: allowlist secret


def _actor(user: User) -> Actor:
    return Actor(
        public_id=user.public_id,
        company_public_id=user.company_public_id,
        role=user.role,
    )


async def _setup(
    auth_service: AuthService, service: UserManagementService
) -> tuple[AuthResult, User]:
    """Register a company and add one viewer to it."""
    owner = await auth_service.register("Acme", "a@acme.test", PASSWORD)
    viewer = await service.create_user(
        _actor(owner.user), name="Vera", email="vera@acme.test", password=PASSWORD
    )
    return owner, viewer


class TestRoleCheck:
    """Test self-or-admin evaluation in both modes."""

    def _actors(self) -> tuple[Actor, Actor]:
        admin = Actor(public_id="admin", company_public_id="c", role=UserRole.ADMIN)
        viewer = Actor(public_id="viewer", company_public_id="c", role=UserRole.VIEWER)
        return admin, viewer

    def test_strict_admits_admin_and_self(self, user_service: UserManagementService) -> None:
        """Admins reach anyone; others only themselves."""
        admin, viewer = self._actors()

        assert user_service.can_access_user(admin, "someone") is True
        assert user_service.can_access_user(viewer, "viewer") is True
        assert user_service.can_access_user(viewer, "someone") is False

    def test_legacy_admits_only_self(self, legacy_user_service: UserManagementService) -> None:
        """Legacy mode refuses admins acting on other users."""
        admin, viewer = self._actors()

        assert legacy_user_service.can_access_user(admin, "someone") is False
        assert legacy_user_service.can_access_user(admin, "admin") is True
        assert legacy_user_service.can_access_user(viewer, "viewer") is True

    def test_current_password_requirement(
        self,
        user_service: UserManagementService,
        legacy_user_service: UserManagementService,
    ) -> None:
        """Strict exempts admins; legacy requires it from everyone."""
        admin, viewer = self._actors()

        assert user_service.requires_current_password(admin) is False
        assert user_service.requires_current_password(viewer) is True
        assert legacy_user_service.requires_current_password(admin) is True

    def test_mode_from_string(
        self, memory_repo: InMemoryAuthRepository, auth_service: AuthService
    ) -> None:
        """Mode accepts its string value."""
        service = UserManagementService(memory_repo, auth_service, "legacy")  # type: ignore[arg-type]

        assert service.role_check_mode is RoleCheckMode.LEGACY


class TestCreateUser:
    """Test user creation."""

    @pytest.mark.asyncio
    async def test_default_permissions(
        self, auth_service: AuthService, user_service: UserManagementService
    ) -> None:
        """Viewers get workouts only; admins also analytics and content."""
        owner, viewer = await _setup(auth_service, user_service)
        admin = await user_service.create_user(
            _actor(owner.user),
            name="Ada",
            email="ada@acme.test",
            password=PASSWORD,
            role=UserRole.ADMIN,
        )

        assert viewer.role == UserRole.VIEWER
        assert viewer.permissions.can_view_workouts is True
        assert viewer.permissions.can_view_analytics is False
        assert admin.permissions.can_view_analytics is True
        assert admin.permissions.can_manage_content is True

    @pytest.mark.asyncio
    async def test_permission_overrides(
        self, auth_service: AuthService, user_service: UserManagementService
    ) -> None:
        """Explicit flags win over the role defaults."""
        owner = await auth_service.register("Acme", "a@acme.test", PASSWORD)

        user = await user_service.create_user(
            _actor(owner.user),
            name="Vic",
            email="vic@acme.test",
            password=PASSWORD,
            permissions={"can_view_analytics": True},
        )

        assert user.permissions.can_view_analytics is True
        assert user.permissions.can_manage_content is False

    @pytest.mark.asyncio
    async def test_password_is_hashed(
        self, auth_service: AuthService, user_service: UserManagementService
    ) -> None:
        """The new user can log in with the given password."""
        await _setup(auth_service, user_service)

        result = await auth_service.login("vera@acme.test", PASSWORD)

        assert result.user.password_hash != PASSWORD

    @pytest.mark.asyncio
    async def test_duplicate_email(
        self, auth_service: AuthService, user_service: UserManagementService
    ) -> None:
        """Should raise ConflictError for an email already in the company."""
        owner, _ = await _setup(auth_service, user_service)

        with pytest.raises(ConflictError) as exc_info:
            await user_service.create_user(
                _actor(owner.user), name="Vera 2", email="VERA@acme.test", password=PASSWORD
            )

        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_quota(
        self,
        auth_service: AuthService,
        user_service: UserManagementService,
    ) -> None:
        """The free plan stops at 5 users."""
        owner = await auth_service.register("Acme", "a@acme.test", PASSWORD)
        for i in range(4):
            await user_service.create_user(
                _actor(owner.user), name=f"U{i}", email=f"u{i}@acme.test", password=PASSWORD
            )

        with pytest.raises(QuotaExceededError) as exc_info:
            await user_service.create_user(
                _actor(owner.user), name="Six", email="six@acme.test", password=PASSWORD
            )

        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_short_password(
        self, auth_service: AuthService, user_service: UserManagementService
    ) -> None:
        """Passwords under 6 characters are refused."""
        owner = await auth_service.register("Acme", "a@acme.test", PASSWORD)

        with pytest.raises(ValidationError):
            await user_service.create_user(
                _actor(owner.user), name="Short", email="s@acme.test", password="12345"
            )


class TestListUsers:
    """Test listing and pagination."""

    @pytest.mark.asyncio
    async def test_pagination(
        self, auth_service: AuthService, user_service: UserManagementService
    ) -> None:
        """Pages are computed from the filtered total."""
        owner, _ = await _setup(auth_service, user_service)
        await user_service.create_user(
            _actor(owner.user), name="Walt", email="walt@acme.test", password=PASSWORD
        )

        page = await user_service.list_users(_actor(owner.user), page=1, limit=2)

        assert page.total == 3
        assert page.pages == 2
        assert page.current == 1
        assert len(page.users) == 2

    @pytest.mark.asyncio
    async def test_search_and_role(
        self, auth_service: AuthService, user_service: UserManagementService
    ) -> None:
        """Search matches name or email; role narrows further."""
        owner, _ = await _setup(auth_service, user_service)

        by_name = await user_service.list_users(_actor(owner.user), search="VER")
        by_role = await user_service.list_users(_actor(owner.user), role=UserRole.SUPER_ADMIN)

        assert [u.email for u in by_name.users] == ["vera@acme.test"]
        assert [u.email for u in by_role.users] == ["a@acme.test"]

    @pytest.mark.asyncio
    async def test_scoped_to_company(
        self, auth_service: AuthService, user_service: UserManagementService
    ) -> None:
        """Users of other companies are never listed."""
        owner, _ = await _setup(auth_service, user_service)
        await auth_service.register("Other", "b@other.test", PASSWORD)

        page = await user_service.list_users(_actor(owner.user))

        assert page.total == 2
        assert all(u.company_public_id == owner.company.public_id for u in page.users)


class TestGetUser:
    """Test fetching a single user."""

    @pytest.mark.asyncio
    async def test_admin_reads_other_user(
        self, auth_service: AuthService, user_service: UserManagementService
    ) -> None:
        """Strict mode lets an admin read a colleague."""
        owner, viewer = await _setup(auth_service, user_service)

        user = await user_service.get_user(_actor(owner.user), viewer.public_id)

        assert user.public_id == viewer.public_id

    @pytest.mark.asyncio
    async def test_viewer_reads_other_user(
        self, auth_service: AuthService, user_service: UserManagementService
    ) -> None:
        """A viewer cannot read someone else."""
        owner, viewer = await _setup(auth_service, user_service)

        with pytest.raises(ForbiddenError):
            await user_service.get_user(_actor(viewer), owner.user.public_id)

    @pytest.mark.asyncio
    async def test_legacy_admin_reads_other_user(
        self,
        auth_service: AuthService,
        user_service: UserManagementService,
        legacy_user_service: UserManagementService,
    ) -> None:
        """Legacy mode refuses even the super admin."""
        owner, viewer = await _setup(auth_service, user_service)

        with pytest.raises(ForbiddenError):
            await legacy_user_service.get_user(_actor(owner.user), viewer.public_id)

    @pytest.mark.asyncio
    async def test_other_company(
        self, auth_service: AuthService, user_service: UserManagementService
    ) -> None:
        """Users of another company are not found."""
        owner, _ = await _setup(auth_service, user_service)
        other = await auth_service.register("Other", "b@other.test", PASSWORD)

        with pytest.raises(NotFoundError):
            await user_service.get_user(_actor(owner.user), other.user.public_id)


class TestUpdateUser:
    """Test profile updates."""

    @pytest.mark.asyncio
    async def test_updates_fields_and_merges_permissions(
        self, auth_service: AuthService, user_service: UserManagementService
    ) -> None:
        """Given fields change; permission flags merge."""
        owner, viewer = await _setup(auth_service, user_service)

        user = await user_service.update_user(
            _actor(owner.user),
            viewer.public_id,
            name=" Veronica ",
            email="Veronica@acme.test",
            role=UserRole.ADMIN,
            permissions={"can_manage_content": True},
        )

        assert user.name == "Veronica"
        assert user.email == "veronica@acme.test"
        assert user.role == UserRole.ADMIN
        assert user.permissions.can_manage_content is True
        assert user.permissions.can_view_workouts is True

    @pytest.mark.asyncio
    async def test_email_collision(
        self, auth_service: AuthService, user_service: UserManagementService
    ) -> None:
        """Should raise ConflictError when the email belongs to someone else."""
        owner, viewer = await _setup(auth_service, user_service)

        with pytest.raises(ConflictError):
            await user_service.update_user(
                _actor(owner.user), viewer.public_id, email="a@acme.test"
            )

    @pytest.mark.asyncio
    async def test_status_change_revokes_sessions(
        self,
        auth_service: AuthService,
        user_service: UserManagementService,
        memory_repo: InMemoryAuthRepository,
    ) -> None:
        """Suspending a user signs them out."""
        owner, viewer = await _setup(auth_service, user_service)
        await auth_service.login("vera@acme.test", PASSWORD)

        await user_service.update_user(
            _actor(owner.user), viewer.public_id, status=UserStatus.SUSPENDED
        )

        stored = await memory_repo.get_user_by_public_id(viewer.public_id)
        assert stored is not None
        assert stored.status == UserStatus.SUSPENDED
        assert stored.sessions == []


class TestDeleteUser:
    """Test deletion."""

    @pytest.mark.asyncio
    async def test_delete(
        self,
        auth_service: AuthService,
        user_service: UserManagementService,
        memory_repo: InMemoryAuthRepository,
    ) -> None:
        """Should remove the user."""
        owner, viewer = await _setup(auth_service, user_service)

        await user_service.delete_user(_actor(owner.user), viewer.public_id)

        assert await memory_repo.get_user_by_public_id(viewer.public_id) is None

    @pytest.mark.asyncio
    async def test_cannot_delete_self(
        self, auth_service: AuthService, user_service: UserManagementService
    ) -> None:
        """Should raise ValidationError on self-deletion."""
        owner, _ = await _setup(auth_service, user_service)

        with pytest.raises(ValidationError) as exc_info:
            await user_service.delete_user(_actor(owner.user), owner.user.public_id)

        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_user(
        self, auth_service: AuthService, user_service: UserManagementService
    ) -> None:
        """Should raise NotFoundError."""
        owner, _ = await _setup(auth_service, user_service)

        with pytest.raises(NotFoundError):
            await user_service.delete_user(_actor(owner.user), "missing")


class TestUpdatePassword:
    """Test password changes."""

    @pytest.mark.asyncio
    async def test_self_change_revokes_all_sessions(
        self,
        auth_service: AuthService,
        user_service: UserManagementService,
        memory_repo: InMemoryAuthRepository,
    ) -> None:
        """Changing a password signs the user out everywhere."""
        _, viewer = await _setup(auth_service, user_service)
        session = await auth_service.login("vera@acme.test", PASSWORD)

        await user_service.update_password(
            _actor(viewer), viewer.public_id, new_password="brand-new", current_password=PASSWORD
        )

        stored = await memory_repo.get_user_by_public_id(viewer.public_id)
        assert stored is not None
        assert stored.sessions == []
        with pytest.raises(RevokedSessionError):
            await auth_service.refresh(session.refresh_token)
        assert (await auth_service.login("vera@acme.test", "brand-new")).user is not None

    @pytest.mark.asyncio
    async def test_wrong_current_password(
        self, auth_service: AuthService, user_service: UserManagementService
    ) -> None:
        """Non-admins must prove the current password."""
        _, viewer = await _setup(auth_service, user_service)

        with pytest.raises(ValidationError):
            await user_service.update_password(
                _actor(viewer), viewer.public_id, new_password="brand-new", current_password="nope"
            )

    @pytest.mark.asyncio
    async def test_short_new_password(
        self, auth_service: AuthService, user_service: UserManagementService
    ) -> None:
        """New passwords under 6 characters are refused."""
        _, viewer = await _setup(auth_service, user_service)

        with pytest.raises(ValidationError):
            await user_service.update_password(
                _actor(viewer), viewer.public_id, new_password="123", current_password=PASSWORD
            )

    @pytest.mark.asyncio
    async def test_admin_resets_other_user(
        self, auth_service: AuthService, user_service: UserManagementService
    ) -> None:
        """In strict mode an admin needs no current password for a colleague."""
        owner, viewer = await _setup(auth_service, user_service)

        await user_service.update_password(
            _actor(owner.user), viewer.public_id, new_password="reset-by-admin"
        )

        result = await auth_service.login("vera@acme.test", "reset-by-admin")
        assert result.user.public_id == viewer.public_id

    @pytest.mark.asyncio
    async def test_legacy_admin_needs_current_password(
        self,
        auth_service: AuthService,
        user_service: UserManagementService,
        legacy_user_service: UserManagementService,
    ) -> None:
        """Legacy mode refuses an admin on others and asks them for their own password."""
        owner, viewer = await _setup(auth_service, user_service)

        with pytest.raises(ForbiddenError):
            await legacy_user_service.update_password(
                _actor(owner.user), viewer.public_id, new_password="reset-by-admin"
            )
        with pytest.raises(ValidationError):
            await legacy_user_service.update_password(
                _actor(owner.user), owner.user.public_id, new_password="brand-new"
            )


class TestToggleStatus:
    """Test activation toggling."""

    @pytest.mark.asyncio
    async def test_deactivation_revokes_sessions(
        self,
        auth_service: AuthService,
        user_service: UserManagementService,
        memory_repo: InMemoryAuthRepository,
    ) -> None:
        """Deactivating clears sessions; reactivating does not add any."""
        owner, viewer = await _setup(auth_service, user_service)
        await auth_service.login("vera@acme.test", PASSWORD)

        user = await user_service.toggle_status(_actor(owner.user), viewer.public_id)

        assert user.status == UserStatus.INACTIVE
        stored = await memory_repo.get_user_by_public_id(viewer.public_id)
        assert stored is not None
        assert stored.sessions == []

        user = await user_service.toggle_status(_actor(owner.user), viewer.public_id)
        assert user.status == UserStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_cannot_toggle_self(
        self, auth_service: AuthService, user_service: UserManagementService
    ) -> None:
        """Should raise ValidationError on self."""
        owner, _ = await _setup(auth_service, user_service)

        with pytest.raises(ValidationError):
            await user_service.toggle_status(_actor(owner.user), owner.user.public_id)
