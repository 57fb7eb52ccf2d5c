"""
Step output capture.

Two channels come back from a command:
- Structured outputs: `key=value` lines the step writes to the file named by
  $GITHUB_OUTPUT. These become steps.<id>.outputs.<key>.
- Console output: stdout/stderr, shown to the user with a head/tail window
  unless the full output was requested.
"""

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional


OUTPUT_ENV_VAR = 'GITHUB_OUTPUT'


@dataclass
class TruncatedOutput:
    """Console output prepared for display."""
    text: str
    truncated: bool = False
    omitted_lines: int = 0


class OutputCapture:
    """
    Creates, reads and cleans up structured output files and prepares
    console output for display.
    """

    def __init__(self, temp_dir: Optional[Path] = None):
        """
        Initialize output capture.

        Args:
            temp_dir: Directory for output files (default: system temp dir)
        """
        self.temp_dir = temp_dir

    def create_output_file(self) -> Path:
        """Create an empty output file for one step execution."""
        fd, path = tempfile.mkstemp(
            prefix='github-output-',
            dir=str(self.temp_dir) if self.temp_dir else None
        )
        os.close(fd)
        return Path(path)

    def read_outputs(self, output_file: Path) -> Dict[str, str]:
        """
        Parse `key=value` lines.

        The value is everything after the first '='. Keys and values are
        trimmed; blank lines and lines without '=' are ignored. A missing
        file yields no outputs.
        """
        outputs: Dict[str, str] = {}
        if not output_file.exists():
            return outputs

        content = output_file.read_text(encoding='utf-8', errors='replace')
        for line in content.split('\n'):
            stripped = line.strip()
            if not stripped or '=' not in stripped:
                continue
            key, value = stripped.split('=', 1)
            outputs[key.strip()] = value.strip()

        return outputs

    def cleanup(self, output_file: Path) -> None:
        try:
            output_file.unlink()
        except FileNotFoundError:
            pass

    def truncate(self, text: str, lines_count: int) -> TruncatedOutput:
        """
        Keep the first and last lines_count lines of text.

        Text of at most 2 * lines_count lines is returned unchanged.
        """
        lines = text.split('\n')
        if lines_count <= 0 or len(lines) <= lines_count * 2:
            return TruncatedOutput(text=text)

        head = lines[:lines_count]
        tail = lines[-lines_count:]
        omitted = len(lines) - len(head) - len(tail)
        truncated_text = (
            '\n'.join(head)
            + f"\n\n... ({omitted} more lines omitted, use --full to see all) ...\n\n"
            + '\n'.join(tail)
        )
        return TruncatedOutput(text=truncated_text, truncated=True, omitted_lines=omitted)
