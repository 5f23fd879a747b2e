"""
Target Resolver

Chooses the channel an email is delivered to: a configured channel for
the recipient, a DM with the matching guild member, or the 'others'
fallback channel.
"""

from typing import Any

from relay.config import Settings
from relay.exceptions import TargetResolutionError
from relay.log_buffer import InvocationLog
from relay.tools.discord import DiscordClient

FALLBACK_ROUTE = "others"


def find_member(client: DiscordClient, username: str) -> dict[str, Any] | None:
    """Guild member whose username matches exactly, or None."""
    for member in client.search_members(username):
        if member.get("user", {}).get("username") == username:
            return member
    return None


def has_required_roles(member: dict[str, Any], required_roles: list[str]) -> bool:
    """True if no roles are required or the member holds any of them."""
    if not required_roles:
        return True
    member_roles = set(member.get("roles", []))
    return any(role in member_roles for role in required_roles)


def resolve_target(
    username: str,
    client: DiscordClient,
    settings: Settings,
    log: InvocationLog,
) -> str:
    """
    Resolve the delivery channel for a recipient username.

    Order: channel map entry, guild member DM, 'others' channel map entry.

    Returns:
        Channel ID

    Raises:
        TargetResolutionError: If the member lacks the required roles or no
            channel is found
    """
    routes = settings.channel_routes

    if username in routes:
        log.info("target_from_channel_map", username=username, channel_id=routes[username])
        return routes[username]

    member = find_member(client, username)

    if member:
        if not has_required_roles(member, settings.required_roles):
            log.warning("member_missing_required_roles", username=username)
            raise TargetResolutionError(username, "Member does not have the required role(s).")

        dm = client.create_dm(member["user"]["id"])
        log.info("target_dm_channel", username=username, channel_id=dm["id"])
        return dm["id"]

    log.warning("discord_member_not_found", username=username)

    if FALLBACK_ROUTE in routes:
        log.info("target_fallback_channel", username=username, channel_id=routes[FALLBACK_ROUTE])
        return routes[FALLBACK_ROUTE]

    log.error("no_target_channel", username=username)
    raise TargetResolutionError(username, "No target channel found for the recipient.")
