"""
Unit tests for the Discord REST client.

Tests cover:
- Batch posting as JSON and as multipart with files
- Attachment uploads
- Guild icon URLs
- Member search and DM creation
- Throttling through the shared sender
"""

import pytest


def _batch(*descriptions: str):
    from relay.models.display import Batch, DisplayUnit

    batch = Batch()
    for description in descriptions:
        batch.add(DisplayUnit(description=description))
    return batch


class TestSendBatch:
    """Tests for DiscordClient.send_batch."""

    def test_posts_json_without_files(self, discord_client, discord_api):
        message = discord_client.send_batch("chan-1", _batch("one", "two"))

        [request] = discord_api.messages_to("chan-1")
        assert not request.is_multipart
        assert request.json_body == {"embeds": [{"description": "one"}, {"description": "two"}]}
        assert request.headers["authorization"] == "Bot test-token"
        assert message["id"] == "msg-1"

    def test_posts_multipart_with_files(self, discord_client, discord_api):
        from relay.models.email import Attachment

        files = [Attachment(filename="full_message.txt", content_type="text/plain", content=b"body")]

        message = discord_client.send_batch("chan-1", _batch("one"), files=files)

        [request] = discord_api.messages_to("chan-1")
        assert request.is_multipart
        assert request.payload_json == {"embeds": [{"description": "one"}]}
        assert request.filenames == ["full_message.txt"]
        assert message["attachments"][0]["filename"] == "full_message.txt"

    def test_failure_raises_http_error(self, discord_client, discord_api):
        import httpx

        from relay.exceptions import HttpError

        discord_api.queue("POST", "/channels/chan-1/messages", httpx.Response(403, json={"message": "Missing Access"}))

        with pytest.raises(HttpError) as exc_info:
            discord_client.send_batch("chan-1", _batch("one"))

        assert exc_info.value.status == 403

    def test_throttled_then_sent(self, discord_client, discord_api, sleeps):
        discord_api.throttle("POST", "/channels/chan-1/messages", times=2, retry_after="0.5")

        discord_client.send_batch("chan-1", _batch("one"))

        assert len(discord_api.messages_to("chan-1")) == 3
        assert sleeps == [0.5, 0.5]


class TestUploadFiles:
    """Tests for DiscordClient.upload_files."""

    def test_returns_urls_in_order(self, discord_client, discord_api):
        from relay.models.email import Attachment

        attachments = [
            Attachment(filename=f"file{i}.bin", content_type="application/octet-stream", content=b"x")
            for i in range(3)
        ]

        urls = discord_client.upload_files("attachments-chan", attachments)

        assert [url.rsplit("/", 1)[-1] for url in urls] == ["file0.bin", "file1.bin", "file2.bin"]
        [request] = discord_api.messages_to("attachments-chan")
        assert request.payload_json is None
        assert request.filenames == ["file0.bin", "file1.bin", "file2.bin"]

    def test_no_attachments_in_response(self, discord_client, discord_api):
        import httpx

        from relay.models.email import Attachment

        discord_api.queue("POST", "/channels/attachments-chan/messages", httpx.Response(200, json={"id": "m"}))

        urls = discord_client.upload_files(
            "attachments-chan",
            [Attachment(filename="a.txt", content_type="text/plain", content=b"a")],
        )

        assert urls == []


class TestGuild:
    """Tests for guild lookups."""

    def test_get_guild(self, discord_client):
        assert discord_client.get_guild()["id"] == "guild-1"

    def test_static_icon_url(self, discord_client):
        url = discord_client.guild_icon_url({"id": "guild-1", "icon": "iconhash"})

        assert url == "https://cdn.discord.test/icons/guild-1/iconhash.png"

    def test_animated_icon_url(self, discord_client):
        url = discord_client.guild_icon_url({"id": "guild-1", "icon": "a_iconhash"})

        assert url == "https://cdn.discord.test/icons/guild-1/a_iconhash.gif"

    def test_no_icon(self, discord_client):
        assert discord_client.guild_icon_url({"id": "guild-1", "icon": None}) is None


class TestMembers:
    """Tests for member search and DM channels."""

    def test_search_members_sends_query(self, discord_client, discord_api):
        discord_api.add_member("u1", "alice")
        discord_api.add_member("u2", "alicia")
        discord_api.add_member("u3", "bob")

        members = discord_client.search_members("ali")

        assert [m["user"]["username"] for m in members] == ["alice", "alicia"]
        [request] = discord_api.requests_to("GET", "/guilds/guild-1/members/search")
        assert request.params == {"query": "ali", "limit": "1000"}

    def test_create_dm(self, discord_client, discord_api):
        channel = discord_client.create_dm("u1")

        assert channel["id"] == "dm-channel-1"
        [request] = discord_api.requests_to("POST", "/users/@me/channels")
        assert request.json_body == {"recipient_id": "u1"}
