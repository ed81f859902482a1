"""Tests for the MCP server command line."""

import pytest

from kdm_timesheet import mcp_server


class TestCommandLine:
    def test_help_lists_tools(self):
        text = mcp_server.build_parser().format_help()
        for tool in ("login", "load_day", "assign_job", "plan_job", "mark_day_off", "clear_slot", "auto_fill", "submit_day"):
            assert tool in text
        assert "MCP_API_KEY" in text

    def test_transport_choices(self):
        args = mcp_server.build_parser().parse_args(["--transport", "stdio", "--env-file", "x.env"])
        assert (args.transport, args.env_file) == ("stdio", "x.env")

    def test_unknown_transport_rejected(self):
        with pytest.raises(SystemExit):
            mcp_server.build_parser().parse_args(["--transport", "carrier-pigeon"])
