"""
Registry of mock implementations for `uses:` actions.

Mocks come from two places:
- Registered programmatically with MockRegistry.register()
- Python files under the mocks directory, one per action:
  <workflow dir>/mocks/<workflow base name>/<owner>-<name>.py
  defining a module-level `mock(invocation)` callable.

Files are loaded lazily on first use and cached for the rest of the run.
"""

import importlib.util
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

logger = logging.getLogger(__name__)


MockCallable = Callable[[Dict[str, Any]], Any]


def strip_version(action: str) -> str:
    """'tj-actions/changed-files@v41' -> 'tj-actions/changed-files'"""
    return action.split('@', 1)[0]


def mock_file_name(action: str) -> str:
    """'tj-actions/changed-files@v41' -> 'tj-actions-changed-files.py'"""
    return strip_version(action).replace('/', '-') + '.py'


def mocks_dir_for(workflow_path: Union[str, Path]) -> Path:
    """Mocks directory belonging to a workflow file."""
    workflow_path = Path(workflow_path).resolve()
    return workflow_path.parent / 'mocks' / workflow_path.stem


class MockRegistry:
    """
    Lookup of mock callables by action name.

    Version suffixes are ignored: `owner/name@v3` and `owner/name` share one
    mock.
    """

    def __init__(self, mocks_dir: Optional[Union[str, Path]] = None):
        """
        Initialize the registry.

        Args:
            mocks_dir: Directory searched for mock files (None disables file lookup)
        """
        self.mocks_dir = Path(mocks_dir) if mocks_dir else None
        self._mocks: Dict[str, Optional[MockCallable]] = {}

    def register(self, action: str, mock: MockCallable) -> None:
        """
        Register a mock for an action.

        Raises:
            ValueError: If mock is not callable
        """
        if not callable(mock):
            raise ValueError(f"Mock for {action} is not callable")
        self._mocks[strip_version(action)] = mock
        logger.debug(f"Registered mock: {strip_version(action)}")

    def mock_path(self, action: str) -> Optional[Path]:
        """Where the mock file for action is expected, if file lookup is enabled."""
        if self.mocks_dir is None:
            return None
        return self.mocks_dir / mock_file_name(action)

    def get(self, action: str) -> Optional[MockCallable]:
        """
        Get the mock for an action.

        Returns:
            The mock callable, or None when the action has no usable mock
        """
        name = strip_version(action)
        if name in self._mocks:
            return self._mocks[name]

        mock = self._load(name)
        self._mocks[name] = mock
        return mock

    def _load(self, name: str) -> Optional[MockCallable]:
        path = self.mock_path(name)
        if path is None:
            return None

        logger.info(f"Looking for mock at: {path}")
        if not path.exists():
            logger.info(f"No mock file found for {name}")
            logger.info(f"Expected file: {path}")
            return None

        logger.info(f"Loading mock from: {path}")
        module_name = f"actrunner_mock_{path.stem.replace('-', '_').replace('.', '_')}"
        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            logger.warning(f"Cannot load mock file {path}")
            return None

        module = importlib.util.module_from_spec(spec)
        try:
            spec.loader.exec_module(module)
        except Exception as e:
            logger.warning(f"Error loading mock for {name}: {e}")
            return None

        mock = getattr(module, 'mock', None)
        if not callable(mock):
            logger.warning(f"Mock file for {name} does not define a callable 'mock'")
            logger.warning(f"Mock file location: {path}")
            return None

        return mock
