"""
Tests for adapter protocol, registry, mock, docker and git adapters.
"""

import subprocess
from unittest.mock import patch

from scaffold.adapters.base import ExecutionContext
from scaffold.adapters.containers.docker import DockerAdapter
from scaffold.adapters.mock import MockAdapter
from scaffold.adapters.registry import AdapterRegistry
from scaffold.adapters.vcs.git import GitAdapter
from scaffold.core.models.action import Action, Receipt


def _mock_result(stdout: str = "", stderr: str = "", returncode: int = 0):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


def _ctx(adapter: str, project_root: str = "/project", **params) -> ExecutionContext:
    return ExecutionContext(
        action=Action(id="op-1", adapter=adapter, params=params),
        project_root=project_root,
    )


# ── Protocol Tests ───────────────────────────────────────────────────


class TestExecutionContext:
    def test_working_dir_defaults_to_root(self):
        ctx = _ctx("docker")
        assert ctx.working_dir == "/project"

    def test_working_dir_from_cwd_param(self):
        ctx = _ctx("docker", cwd="/elsewhere")
        assert ctx.working_dir == "/elsewhere"


# ── Mock Adapter Tests ───────────────────────────────────────────────


class TestMockAdapter:
    def test_default_success(self):
        mock = MockAdapter(adapter_name="test-mock")
        receipt = mock.execute(ExecutionContext(action=Action(id="op-1", adapter="test-mock")))
        assert receipt.ok
        assert mock.call_count == 1

    def test_set_failure(self):
        mock = MockAdapter()
        mock.set_failure("op-1", error="nope", return_code=3)
        receipt = mock.execute(ExecutionContext(action=Action(id="op-1", adapter="mock")))
        assert receipt.failed
        assert receipt.return_code == 3
        assert receipt.command == "mock op-1"

    def test_queue_consumed_before_fixed_response(self):
        mock = MockAdapter(adapter_name="docker")
        mock.queue("compose-exec", False, True)
        ctx = ExecutionContext(action=Action(id="compose-exec", adapter="docker"))
        assert [mock.execute(ctx).ok for _ in range(3)] == [False, True, True]
        assert len(mock.params("compose-exec")) == 3

    def test_reset(self):
        mock = MockAdapter()
        mock.set_failure("op-1")
        mock.execute(ExecutionContext(action=Action(id="op-1", adapter="mock")))
        mock.reset()
        assert mock.call_count == 0
        assert mock.execute(ExecutionContext(action=Action(id="op-1", adapter="mock"))).ok


# ── Registry Tests ───────────────────────────────────────────────────


class TestAdapterRegistry:
    def test_dispatch(self):
        registry = AdapterRegistry()
        mock = MockAdapter(adapter_name="docker")
        registry.register(mock)
        receipt = registry.execute_action(Action(id="compose-up", adapter="docker"), project_root="/p")
        assert receipt.ok
        assert mock.call_log[0].project_root == "/p"

    def test_unknown_adapter(self):
        receipt = AdapterRegistry().execute_action(Action(id="x", adapter="nope"))
        assert receipt.failed
        assert "No adapter registered" in receipt.error

    def test_validation_failure(self):
        registry = AdapterRegistry()
        registry.register(GitAdapter())
        receipt = registry.execute_action(Action(id="x", adapter="git", params={"operation": "push"}))
        assert receipt.failed
        assert "Unsupported git operation" in receipt.error

    def test_adapter_exception_becomes_receipt(self):
        registry = AdapterRegistry()
        mock = MockAdapter(adapter_name="docker")
        registry.register(mock)
        with patch.object(mock, "execute", side_effect=RuntimeError("kaboom")):
            receipt = registry.execute_action(Action(id="x", adapter="docker"))
        assert receipt.failed
        assert "kaboom" in receipt.error

    def test_list_adapters(self):
        registry = AdapterRegistry()
        registry.register(MockAdapter(adapter_name="docker"))
        registry.register(MockAdapter(adapter_name="git"))
        assert registry.list_adapters() == ["docker", "git"]
        assert registry.get("git").name == "git"
        assert registry.get("svn") is None


# ── Docker Adapter Tests ─────────────────────────────────────────────


class TestDockerAdapter:
    def test_validate(self):
        docker = DockerAdapter()
        assert docker.validate(_ctx("docker", operation="up"))[0] is False
        assert docker.validate(_ctx("docker", operation="exec", files=["c.yaml"]))[0] is False
        assert docker.validate(_ctx("docker", operation="run", name="x"))[0] is False
        assert docker.validate(_ctx("docker", operation="up", files=["c.yaml"]))[0] is True

    def test_compose_argv(self):
        docker = DockerAdapter()
        argv = docker.compose_argv({
            "operation": "down",
            "files": ["compose.yaml", "compose.mysql.yaml"],
            "project_name": "my_app",
        })
        assert argv == [
            "docker", "compose", "-p", "my_app",
            "-f", "compose.yaml", "-f", "compose.mysql.yaml",
            "down", "--remove-orphans", "--volumes",
        ]

    def test_compose_v1(self):
        docker = DockerAdapter(compose_command=["docker-compose"])
        argv = docker.compose_argv({"operation": "build", "files": ["c.yaml"], "no_cache": True})
        assert argv == ["docker-compose", "-f", "c.yaml", "build", "--pull", "--no-cache"]

    def test_exec_argv(self):
        argv = DockerAdapter().compose_argv({
            "operation": "exec", "files": ["c.yaml"], "service": "php", "argv": ["composer", "install"],
        })
        assert argv[-5:] == ["exec", "-T", "php", "composer", "install"]

    def test_run_argv(self):
        argv = DockerAdapter.run_argv({
            "name": "scaffold-shared-mailer",
            "image": "axllent/mailpit",
            "ports": {1025: 1025, 8026: 8025},
            "env": {"A": "1"},
            "args": ["--verbose"],
        })
        assert argv == [
            "docker", "run", "--detach", "--name", "scaffold-shared-mailer",
            "--restart", "always",
            "-p", "1025:1025", "-p", "8026:8025",
            "-e", "A=1",
            "axllent/mailpit", "--verbose",
        ]

    def test_execute_success(self):
        ctx = _ctx("docker", operation="up", files=["compose.yaml"], project_name="my_app")
        with patch("subprocess.run", return_value=_mock_result(stdout="done\n")) as run:
            receipt = DockerAdapter().execute(ctx)
        assert receipt.ok
        assert receipt.output == "done"
        assert receipt.command == "docker compose -p my_app -f compose.yaml up --detach"
        assert run.call_args[1]["cwd"] == "/project"

    def test_execute_failure_keeps_exit_code(self):
        ctx = _ctx("docker", operation="up", files=["compose.yaml"])
        with patch("subprocess.run", return_value=_mock_result(stderr="port is allocated", returncode=1)):
            receipt = DockerAdapter().execute(ctx)
        assert receipt.failed
        assert receipt.return_code == 1
        assert receipt.error == "port is allocated"

    def test_execute_timeout(self):
        ctx = _ctx("docker", operation="build", files=["compose.yaml"], timeout=5)
        with patch("subprocess.run", side_effect=subprocess.TimeoutExpired("docker", 5)):
            receipt = DockerAdapter().execute(ctx)
        assert receipt.failed
        assert "timed out after 5s" in receipt.error

    def test_inspect_env(self):
        ctx = _ctx("docker", operation="inspect-env", container="hub")
        with patch("subprocess.run", return_value=_mock_result(stdout='["A=1"]')) as run:
            DockerAdapter().execute(ctx)
        assert run.call_args[0][0][-1] == "hub"


# ── Git Adapter Tests ────────────────────────────────────────────────


class TestGitAdapter:
    def test_validate_clone(self):
        git = GitAdapter()
        assert git.validate(_ctx("git", operation="clone", source="x"))[0] is False
        assert git.validate(_ctx("git", operation="clone", source="x", dest="y"))[0] is True

    def test_clone_argv(self):
        argv = GitAdapter.clone_argv({"source": "https://example.com/t.git", "dest": "/tmp/x", "ref": "v2"})
        assert argv == [
            "git", "clone", "--quiet", "--depth", "1", "--branch", "v2",
            "https://example.com/t.git", "/tmp/x",
        ]

    def test_clone_failure(self):
        ctx = _ctx("git", operation="clone", source="https://example.com/missing.git", dest="/tmp/x")
        with patch("subprocess.run", return_value=_mock_result(stderr="repository not found", returncode=128)):
            receipt = GitAdapter().execute(ctx)
        assert receipt.failed
        assert receipt.return_code == 128
        assert receipt.command.startswith("git clone")

    def test_missing_binary(self):
        with patch("subprocess.run", side_effect=FileNotFoundError("git")):
            receipt = GitAdapter().execute(_ctx("git", operation="version"))
        assert receipt.failed
        assert "Git error" in receipt.error


def test_receipt_skip():
    r = Receipt.skip(adapter="docker", action_id="x", reason="later")
    assert r.status == "skipped"
    assert r.output == "later"
