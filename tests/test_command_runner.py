"""
Tests for shell command execution and toolchain detection.
"""

from actrunner.exec.command import CommandRunner, ToolchainProbe


class TestCommandRunner:
    """Test command execution through bash."""

    def test_build_shell_command(self):
        runner = CommandRunner()

        assert runner.build_shell_command('make', '/repo') == 'cd /repo && make'
        assert runner.build_shell_command('make', '/my repo', 'mise 2024.1.0') == (
            'cd \'/my repo\' && eval "$(mise activate bash)" && make'
        )

    def test_captures_output_in_working_dir(self, tmp_path):
        (tmp_path / 'marker.txt').write_text('x')

        result = CommandRunner().execute('ls && echo done', tmp_path)

        assert result.success
        assert result.exit_code == 0
        assert 'marker.txt' in result.output
        assert 'done' in result.output

    def test_env_overlay(self, tmp_path):
        result = CommandRunner().execute('echo "$GREETING"', tmp_path, {'GREETING': 'hello'})
        assert result.output.strip() == 'hello'

    def test_failure(self, tmp_path):
        result = CommandRunner().execute('echo oops >&2; exit 3', tmp_path)

        assert not result.success
        assert result.exit_code == 3
        assert result.error.strip() == 'oops'

    def test_missing_shell(self, tmp_path):
        result = CommandRunner(shell='definitely-not-a-shell').execute('ls', tmp_path)

        assert not result.success
        assert result.exit_code == 1


class TestToolchainProbe:

    def test_detects_version(self):
        assert ToolchainProbe('echo mise 2024.1.0').detect() == 'mise 2024.1.0'

    def test_not_installed(self):
        assert ToolchainProbe('exit 127').detect() is None
