"""Control-command parsing."""

from intake_flow.commands import CommandName, is_command, parse_command


class TestParseCommand:

    def test_plain_text_is_not_a_command(self):
        assert parse_command("Jane Doe") is None
        assert not is_command("Jane Doe")

    def test_known_commands(self):
        expected = {
            "/jobs": CommandName.LIST_JOBS,
            "/status": CommandName.SHOW_STATUS,
            "/applications": CommandName.LIST_APPLICATIONS,
            "/upload": CommandName.UPLOAD_NOW,
            "/reset": CommandName.RESET,
            "/restart": CommandName.RESET,
            "/help": CommandName.HELP,
        }
        for text, name in expected.items():
            assert parse_command(text).name == name, text

    def test_start_with_argument(self):
        cmd = parse_command("/start 6f1c2d7e-0000-4000-8000-000000000001")
        assert cmd.name == CommandName.START
        assert cmd.argument == "6f1c2d7e-0000-4000-8000-000000000001"

    def test_start_without_argument(self):
        cmd = parse_command("/start")
        assert cmd.name == CommandName.START
        assert cmd.argument is None

    def test_bot_mention_suffix_and_case(self):
        cmd = parse_command("/JOBS@HiringBot")
        assert cmd.name == CommandName.LIST_JOBS

    def test_unknown_command(self):
        cmd = parse_command("/frobnicate now")
        assert cmd.name == CommandName.UNKNOWN
        assert cmd.raw == "/frobnicate now"

    def test_slash_alone_is_unknown(self):
        cmd = parse_command("/")
        assert cmd is not None
        assert cmd.name == CommandName.UNKNOWN

    def test_leading_whitespace(self):
        assert is_command("  /status")
        assert parse_command("  /status").name == CommandName.SHOW_STATUS
