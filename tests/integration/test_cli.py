"""Integration tests for the chat application loop and CLI commands."""

import io
import os
import signal

import pytest
from click.testing import CliRunner

from payroll_chat.cli.main import ChatApplication, cli, run_application
from payroll_chat.lib.config import ConfigurationManager
from payroll_chat.lib.errors import AuthError
from payroll_chat.models.agent_run import RunStatus
from tests.conftest import FakeAgentGateway


ENDPOINT = "https://payroll.services.ai.azure.com/api/projects/payroll"


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for env_var in list(ConfigurationManager.ENV_MAPPINGS) + ["PAYROLL_CHAT_ACCESS_TOKEN", "PAYROLL_CHAT_CONFIG_PATH"]:
        monkeypatch.delenv(env_var, raising=False)


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "payroll_chat.yaml"
    path.write_text(
        f"ProjectEndpoint: {ENDPOINT}\n"
        "AgentId: asst_payroll\n"
        "polling:\n"
        "  interval_seconds: 0.01\n"
        "logging:\n"
        "  console_level: CRITICAL\n"
        f"  directory: {tmp_path / 'logs'}\n"
    )
    return str(path)


def _app(config_path, gateway, lines):
    return ChatApplication(
        config_path=config_path,
        gateway_factory=lambda config_manager: gateway,
        input_stream=io.StringIO(lines)
    )


class InterruptingGateway(FakeAgentGateway):
    """Delivers SIGINT to the process on the first run status read."""

    async def get_run(self, session, run_id):
        if not any(call[0] == "get_run" for call in self.calls):
            os.kill(os.getpid(), signal.SIGINT)
        return await super().get_run(session, run_id)


class TestChatApplication:
    """Test the interactive loop end to end with an in-memory gateway."""

    def test_chat_then_quit(self, config_path, capsys):
        gateway = FakeAgentGateway()
        gateway.script_run(RunStatus.IN_PROGRESS, RunStatus.COMPLETED, reply="Hello!")

        exit_code = run_application(_app(config_path, gateway, "Hi\nquit\n"))

        out = capsys.readouterr().out
        assert exit_code == 0
        assert "🚀 Started new conversation (Thread: thread_1)" in out
        assert "🤖 Assistant:\nHello!\n" in out
        assert out.rstrip().endswith("👋 Chat ended. Goodbye!")
        assert gateway.closed

    def test_end_of_input_exits_cleanly(self, config_path, capsys):
        gateway = FakeAgentGateway()

        exit_code = run_application(_app(config_path, gateway, ""))

        assert exit_code == 0
        assert gateway.call_names() == ["create_session"]
        assert "Goodbye" in capsys.readouterr().out

    def test_turns_alternate_roles(self, config_path):
        gateway = FakeAgentGateway()
        for answer in ("First", "Second", "Third"):
            gateway.script_run(RunStatus.COMPLETED, reply=answer)

        exit_code = run_application(_app(config_path, gateway, "one\n\ntwo\nthree\nquit\n"))

        assert exit_code == 0
        messages = gateway.messages["thread_1"]
        assert [m.role.value for m in messages] == ["user", "agent"] * 3
        assert [m.text for m in messages] == ["one", "First", "two", "Second", "three", "Third"]

    def test_failed_turn_does_not_end_session(self, config_path, capsys):
        gateway = FakeAgentGateway()
        gateway.fail_on["start_run"] = AuthError("token expired", 401)

        exit_code = run_application(_app(config_path, gateway, "Hi\nquit\n"))

        assert exit_code == 0
        assert "❌ Not authorized: token expired" in capsys.readouterr().out

    def test_upload_command(self, config_path, tmp_path, capsys):
        payslip = tmp_path / "payslip.pdf"
        payslip.write_bytes(b"%PDF-1.4 payslip")
        gateway = FakeAgentGateway()
        gateway.script_run(RunStatus.COMPLETED, reply="Your net pay is listed on page 1.")

        exit_code = run_application(_app(config_path, gateway, f"upload {payslip}\nquit\n"))

        out = capsys.readouterr().out
        assert exit_code == 0
        assert "✅ File uploaded successfully: payslip.pdf" in out
        assert "Your net pay is listed on page 1." in out
        assert len(gateway.uploads) == 1

    def test_session_creation_auth_failure(self, config_path, capsys):
        gateway = FakeAgentGateway()
        gateway.fail_on["create_session"] = AuthError("credential rejected", 401)

        exit_code = run_application(_app(config_path, gateway, "Hi\n"))

        assert exit_code == 1
        assert "Authentication failed: credential rejected" in capsys.readouterr().err

    def test_missing_configuration(self, tmp_path, capsys):
        app = _app(str(tmp_path / "absent.yaml"), FakeAgentGateway(), "Hi\n")

        assert run_application(app) == 1
        assert "ProjectEndpoint and AgentId not configured" in capsys.readouterr().err

    def test_missing_access_token(self, config_path, capsys):
        app = ChatApplication(config_path=config_path, input_stream=io.StringIO("Hi\n"))

        assert run_application(app) == 1
        assert "PAYROLL_CHAT_ACCESS_TOKEN" in capsys.readouterr().err

    def test_interrupt_while_waiting_for_run(self, config_path, capsys):
        gateway = InterruptingGateway()
        gateway.script_run(RunStatus.IN_PROGRESS)

        exit_code = run_application(_app(config_path, gateway, "Hi\nquit\n"))

        assert exit_code == 1
        assert "❌ Application cancelled by user." in capsys.readouterr().out
        assert gateway.closed
        assert "list_messages" not in gateway.call_names()


class TestValidateCommand:

    def test_validate_reports_configuration(self, config_path):
        result = CliRunner().invoke(cli, ["--config", config_path, "validate"], obj={})

        assert result.exit_code == 0
        assert "Configuration validation completed successfully!" in result.output
        assert "Agent: asst_payroll" in result.output
        assert "PAYROLL_CHAT_ACCESS_TOKEN is not set" in result.output

    def test_validate_missing_configuration(self, tmp_path):
        result = CliRunner().invoke(cli, ["--config", str(tmp_path / "absent.yaml"), "validate"], obj={})

        assert result.exit_code == 1
