"""Tests for the package-manager build adapter.

``subprocess.run`` and ``shutil.which`` are replaced so no real npm is needed;
the fake runner creates the output a real build would produce.
"""

import os
import subprocess

import pytest

from staticbundle.build import npm as npm_module
from staticbundle.build.npm import STAMP_FILE, NpmBuild, YarnBuild, npm_resource_dir
from staticbundle.errors import BuildStepFailed, BuildStepTimeout, ConfigError, ResourceDirNotFound


class FakeRunner:
    """Records invocations and emulates install/build output."""

    def __init__(self, returncodes=None, timeout_on=None):
        self.calls = []
        self.returncodes = returncodes or {}
        self.timeout_on = timeout_on

    def __call__(self, cmd, cwd=None, env=None, timeout=None):
        args = tuple(cmd[1:])
        self.calls.append({"cmd": list(cmd), "cwd": cwd, "env": env, "timeout": timeout})
        if args == self.timeout_on:
            raise subprocess.TimeoutExpired(cmd, timeout)
        code = self.returncodes.get(args, 0)
        if code == 0:
            if args == ("install",):
                pkg = os.path.join(cwd, "node_modules", "left-pad")
                os.makedirs(pkg, exist_ok=True)
                with open(os.path.join(pkg, "index.js"), "w") as f:
                    f.write("module.exports = () => {};\n")
            elif args[:1] == ("run",):
                dist = os.path.join(cwd, "dist")
                os.makedirs(dist, exist_ok=True)
                with open(os.path.join(dist, "index.html"), "w") as f:
                    f.write("<html>built</html>")
        return subprocess.CompletedProcess(cmd, code)

    @property
    def commands(self):
        return [c["cmd"] for c in self.calls]


@pytest.fixture
def project(tmp_path):
    root = tmp_path / "web"
    (root / "src").mkdir(parents=True)
    (root / "package.json").write_text('{"name": "web", "scripts": {"build": "webpack"}}')
    (root / "src" / "main.js").write_text("console.log(1);\n")
    return root


@pytest.fixture
def runner(monkeypatch):
    fake = FakeRunner()
    monkeypatch.setattr(npm_module.subprocess, "run", fake)
    monkeypatch.setattr(npm_module.shutil, "which", lambda name: f"/usr/bin/{name}")
    return fake


# ═══════════════════════════════════════════════════════════════════════════════
# PIPELINE
# ═══════════════════════════════════════════════════════════════════════════════

class TestPipeline:
    def test_install_then_run(self, project, runner):
        target = NpmBuild(project).install().run("build").target(project / "dist").execute()
        assert target == project / "dist"
        assert runner.commands == [
            ["/usr/bin/npm", "install"],
            ["/usr/bin/npm", "run", "build"],
        ]
        assert all(c["cwd"] == str(project) for c in runner.calls)

    def test_build_registry_reads_target(self, project, runner):
        registry = NpmBuild(project).install().run("build").target(project / "dist").build_registry()
        assert list(registry) == ["index.html"]
        assert registry["index.html"].data == b"<html>built</html>"

    def test_to_resource_dir(self, project, runner, tmp_path):
        rd = NpmBuild(project).run("build").target(project / "dist").to_resource_dir()
        out = rd.with_generated_filename(tmp_path / "assets.py").build()
        assert out.is_file()

    def test_no_steps_embeds_existing_target(self, project, runner):
        (project / "public").mkdir()
        (project / "public" / "a.txt").write_text("a")
        registry = NpmBuild(project).target(project / "public").build_registry()
        assert list(registry) == ["a.txt"]
        assert runner.calls == []

    def test_yarn(self, project, runner):
        YarnBuild(project).install().execute()
        assert runner.commands == [["/usr/bin/yarn", "install"]]

    def test_custom_executable(self, project, runner):
        NpmBuild(project).executable("pnpm").install().execute()
        assert runner.commands == [["/usr/bin/pnpm", "install"]]

    def test_npm_resource_dir_embeds_dependencies(self, project, runner):
        registry = npm_resource_dir(project).build_registry()
        assert "left-pad/index.js" in registry

    def test_timeout_passed_through(self, project, runner):
        NpmBuild(project).install().timeout(30).execute()
        assert runner.calls[0]["timeout"] == 30


# ═══════════════════════════════════════════════════════════════════════════════
# FAILURES
# ═══════════════════════════════════════════════════════════════════════════════

class TestFailures:
    def test_non_zero_exit(self, project, runner):
        runner.returncodes[("run", "build")] = 2
        with pytest.raises(BuildStepFailed) as exc:
            NpmBuild(project).install().run("build").target(project / "dist").execute()
        assert exc.value.step == "run build"
        assert exc.value.exit_code == 2
        assert "run build" in str(exc.value) and "2" in str(exc.value)

    def test_failed_install_stops_pipeline(self, project, runner):
        runner.returncodes[("install",)] = 1
        with pytest.raises(BuildStepFailed):
            NpmBuild(project).install().run("build").execute()
        assert len(runner.calls) == 1

    def test_timeout(self, project, runner):
        runner.timeout_on = ("run", "build")
        with pytest.raises(BuildStepTimeout) as exc:
            NpmBuild(project).run("build").timeout(0.5).execute()
        assert exc.value.step == "run build"
        assert exc.value.timeout == 0.5

    def test_missing_executable(self, project, runner, monkeypatch):
        monkeypatch.setattr(npm_module.shutil, "which", lambda name: None)
        with pytest.raises(ConfigError):
            NpmBuild(project).install().execute()
        assert runner.calls == []

    def test_missing_manifest(self, project, runner):
        (project / "package.json").unlink()
        with pytest.raises(ConfigError):
            NpmBuild(project).install().execute()
        assert runner.calls == []

    def test_missing_source(self, tmp_path, runner):
        with pytest.raises(ResourceDirNotFound):
            NpmBuild(tmp_path / "missing").install().execute()

    def test_missing_target(self, project, runner):
        with pytest.raises(ResourceDirNotFound):
            NpmBuild(project).install().target(project / "build").execute()


# ═══════════════════════════════════════════════════════════════════════════════
# CHANGE DETECTION & ENVIRONMENT
# ═══════════════════════════════════════════════════════════════════════════════

class TestChangeDetection:
    def _build(self, project):
        return NpmBuild(project).install().run("build").target(project / "dist").change_detection()

    def test_second_build_skipped(self, project, runner):
        self._build(project).execute()
        assert len(runner.calls) == 2
        assert (project / STAMP_FILE).is_file()
        self._build(project).execute()
        assert len(runner.calls) == 2

    def test_source_change_reruns(self, project, runner):
        self._build(project).execute()
        (project / "src" / "main.js").write_text("console.log(2);\n")
        self._build(project).execute()
        assert len(runner.calls) == 4

    def test_manifest_change_reruns(self, project, runner):
        self._build(project).execute()
        (project / "package.json").write_text('{"name": "web", "version": "2.0.0"}')
        self._build(project).execute()
        assert len(runner.calls) == 4

    def test_changed_script_reruns(self, project, runner):
        self._build(project).execute()
        NpmBuild(project).install().run("build:prod").target(project / "dist").change_detection().execute()
        assert runner.commands[2:] == [
            ["/usr/bin/npm", "install"],
            ["/usr/bin/npm", "run", "build:prod"],
        ]

    def test_changed_executable_reruns(self, project, runner):
        self._build(project).execute()
        self._build(project).executable("yarn").execute()
        assert len(runner.calls) == 4
        assert runner.commands[2][0] == "/usr/bin/yarn"

    def test_changed_node_options_reruns(self, project, runner):
        self._build(project).execute()
        self._build(project).node_options("--max-old-space-size=4096").execute()
        assert len(runner.calls) == 4
        self._build(project).node_options("--max-old-space-size=4096").execute()
        assert len(runner.calls) == 4

    def test_fingerprint_ignores_outputs(self, project, runner):
        build = self._build(project)
        build.execute()
        before = build.fingerprint()
        (project / "dist" / "extra.js").write_text("x")
        (project / "node_modules" / "more.js").write_text("x")
        assert build.fingerprint() == before

    def test_disabled_always_runs(self, project, runner):
        NpmBuild(project).install().execute()
        NpmBuild(project).install().execute()
        assert len(runner.calls) == 2
        assert not (project / STAMP_FILE).exists()


class TestEnvironment:
    def test_node_options_scoped_to_child(self, project, runner, monkeypatch):
        monkeypatch.delenv("NODE_OPTIONS", raising=False)
        NpmBuild(project).install().node_options("--max-old-space-size=4096").execute()
        assert runner.calls[0]["env"]["NODE_OPTIONS"] == "--max-old-space-size=4096"
        assert "NODE_OPTIONS" not in os.environ

    def test_parent_environment_inherited(self, project, runner, monkeypatch):
        monkeypatch.setenv("STATICBUNDLE_TEST_VAR", "1")
        NpmBuild(project).install().execute()
        assert runner.calls[0]["env"]["STATICBUNDLE_TEST_VAR"] == "1"
