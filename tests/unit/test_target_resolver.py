"""
Unit tests for delivery target resolution.

Tests cover:
- Channel map precedence
- Exact member matching and DM creation
- Required roles
- 'others' fallback and unresolvable recipients
"""

import pytest


def _settings(**overrides):
    from relay.config import Settings

    return Settings(_env_file=None, **overrides)


class TestFindMember:
    """Tests for find_member."""

    def test_exact_match_only(self, discord_client, discord_api):
        from lambdas.process_inbound_email.target_resolver import find_member

        discord_api.add_member("u1", "alicia")
        discord_api.add_member("u2", "alice")

        member = find_member(discord_client, "alice")

        assert member["user"]["id"] == "u2"

    def test_prefix_match_is_not_enough(self, discord_client, discord_api):
        from lambdas.process_inbound_email.target_resolver import find_member

        discord_api.add_member("u1", "alicia")

        assert find_member(discord_client, "ali") is None


class TestHasRequiredRoles:
    """Tests for has_required_roles."""

    def test_no_roles_required(self):
        from lambdas.process_inbound_email.target_resolver import has_required_roles

        assert has_required_roles({"roles": []}, []) is True

    def test_any_role_suffices(self):
        from lambdas.process_inbound_email.target_resolver import has_required_roles

        assert has_required_roles({"roles": ["r2"]}, ["r1", "r2"]) is True
        assert has_required_roles({"roles": ["r3"]}, ["r1", "r2"]) is False


class TestResolveTarget:
    """Tests for resolve_target."""

    def test_channel_map_wins(self, discord_client, discord_api, settings, invocation_log):
        from lambdas.process_inbound_email.target_resolver import resolve_target

        discord_api.add_member("u1", "support")

        assert resolve_target("support", discord_client, settings, invocation_log) == "support-chan"
        assert discord_api.requests == []

    def test_member_gets_dm(self, discord_client, discord_api, settings, invocation_log):
        from lambdas.process_inbound_email.target_resolver import resolve_target

        discord_api.add_member("u1", "alice")

        assert resolve_target("alice", discord_client, settings, invocation_log) == "dm-channel-1"
        [dm_request] = discord_api.requests_to("POST", "/users/@me/channels")
        assert dm_request.json_body == {"recipient_id": "u1"}

    def test_member_with_required_role(self, discord_client, discord_api, invocation_log):
        from lambdas.process_inbound_email.target_resolver import resolve_target

        discord_api.add_member("u1", "alice", roles=["staff"])

        target = resolve_target("alice", discord_client, _settings(roles_required="staff,admin"), invocation_log)

        assert target == "dm-channel-1"

    def test_member_missing_role(self, discord_client, discord_api, invocation_log):
        from lambdas.process_inbound_email.target_resolver import resolve_target
        from relay.exceptions import TargetResolutionError

        discord_api.add_member("u1", "alice", roles=["guest"])

        with pytest.raises(TargetResolutionError) as exc_info:
            resolve_target("alice", discord_client, _settings(roles_required="staff"), invocation_log)

        assert exc_info.value.reason == "Member does not have the required role(s)."
        assert discord_api.requests_to("POST", "/users/@me/channels") == []

    def test_unknown_user_falls_back_to_others(self, discord_client, settings, invocation_log):
        from lambdas.process_inbound_email.target_resolver import resolve_target

        assert resolve_target("nobody", discord_client, settings, invocation_log) == "others-chan"
        assert any(e.level == "WARNING" for e in invocation_log.entries)

    def test_unresolvable(self, discord_client, invocation_log):
        from lambdas.process_inbound_email.target_resolver import resolve_target
        from relay.exceptions import TargetResolutionError

        with pytest.raises(TargetResolutionError) as exc_info:
            resolve_target("nobody", discord_client, _settings(channel_map=""), invocation_log)

        assert exc_info.value.username == "nobody"
        assert str(exc_info.value).startswith("No target channel found for the recipient.")
