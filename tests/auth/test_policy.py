"""Tests for admin eligibility."""

from bracket_live.auth.policy import AdminPolicy, Role, UserIdentity
from tests.conftest import get_test_settings


class TestAdminPolicy:
    def test_listed_external_id_is_admin(self):
        policy = AdminPolicy(["discord-1", "discord-2"])

        assert policy.is_admin(UserIdentity("u1", "discord-2")) is True
        assert policy.role_for(UserIdentity("u1", "discord-2")) == Role.ADMIN

    def test_unlisted_or_missing_external_id_is_viewer(self):
        policy = AdminPolicy(["discord-1"])

        assert policy.role_for(UserIdentity("u1", "discord-9")) == Role.VIEWER
        assert policy.role_for(UserIdentity("u1")) == Role.VIEWER
        assert policy.role_for(UserIdentity("u1", "")) == Role.VIEWER
        assert policy.role_for(None) == Role.VIEWER

    def test_user_id_is_not_checked(self):
        policy = AdminPolicy(["discord-1"])

        assert policy.is_admin(UserIdentity("discord-1", "other")) is False

    def test_tournament_and_panel_lists_are_separate(self):
        settings = get_test_settings(
            tournament_admin_ids="discord-a, discord-b",
            panel_admin_ids="discord-c",
        )

        tournament = AdminPolicy.for_tournament(settings)
        panel = AdminPolicy.for_panel(settings)

        assert tournament.admin_ids == frozenset({"discord-a", "discord-b"})
        assert panel.admin_ids == frozenset({"discord-c"})
        assert not panel.is_admin(UserIdentity("u1", "discord-a"))
