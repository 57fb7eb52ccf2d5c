"""
Tests for structured output files and console output truncation.
"""

from actrunner.exec.output_capture import OutputCapture


class TestOutputFiles:
    """Test GITHUB_OUTPUT file handling."""

    def test_create_and_cleanup(self, tmp_path):
        capture = OutputCapture(tmp_path)

        output_file = capture.create_output_file()

        assert output_file.exists()
        assert output_file.parent == tmp_path
        assert output_file.name.startswith('github-output-')

        capture.cleanup(output_file)
        assert not output_file.exists()
        capture.cleanup(output_file)

    def test_read_key_value_lines(self, tmp_path):
        output_file = tmp_path / 'out'
        output_file.write_text(
            "foo=bar\n"
            "\n"
            "  spaced = value with = sign  \n"
            "no equals sign here\n"
            "empty=\n"
        )

        outputs = OutputCapture().read_outputs(output_file)

        assert outputs == {'foo': 'bar', 'spaced': 'value with = sign', 'empty': ''}

    def test_later_lines_win(self, tmp_path):
        output_file = tmp_path / 'out'
        output_file.write_text("tag=v1\ntag=v2\n")

        assert OutputCapture().read_outputs(output_file) == {'tag': 'v2'}

    def test_missing_file(self, tmp_path):
        assert OutputCapture().read_outputs(tmp_path / 'missing') == {}


class TestTruncation:
    """Test head/tail display of long output."""

    def test_long_output_truncated(self):
        text = '\n'.join(f"line {n}" for n in range(1, 26))

        result = OutputCapture().truncate(text, 5)

        assert result.truncated
        assert result.omitted_lines == 15
        lines = result.text.split('\n')
        assert lines[:5] == ['line 1', 'line 2', 'line 3', 'line 4', 'line 5']
        assert lines[-5:] == ['line 21', 'line 22', 'line 23', 'line 24', 'line 25']
        assert '... (15 more lines omitted, use --full to see all) ...' in result.text

    def test_short_output_unchanged(self):
        text = '\n'.join(str(n) for n in range(10))

        result = OutputCapture().truncate(text, 5)

        assert not result.truncated
        assert result.text == text

    def test_zero_lines_disables_truncation(self):
        text = '\n'.join(str(n) for n in range(100))
        assert OutputCapture().truncate(text, 0).text == text
