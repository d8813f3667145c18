"""
StubTap Stub Loader

YAML-based stub definitions.

Example file:

    config:
      port: 9090

    stubs:
      - when:
          method: GET
          uri: /users/{id}
          headers:
            Accept: application/json
        respond:
          status: 200
          json: {"id": 1, "name": "John Doe"}

      - when:
          method: GET
          uri: /jobs/42
        sequence:
          - body: "pending"
          - body: "done"
        times: 2
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

import yaml

from .semantics import Action, ActionSequence, Condition, Stub
from .semantics import action as actions
from .semantics import condition as conditions
from .server import StubServerConfig


logger = logging.getLogger("stubtap.loader")


@dataclass
class StubDefinitions:
    """Result of loading a definitions file."""

    config: StubServerConfig = field(default_factory=StubServerConfig)
    stubs: List[Stub] = field(default_factory=list)


class StubLoader:
    """
    Loader for YAML stub definition files.

    Example:
        definitions = StubLoader("stubs.yaml").load()
        server = StubServer(config=definitions.config, stubs=definitions.stubs)
    """

    def __init__(self, file_path: str):
        """
        Initialize stub loader.

        Args:
            file_path: Path to stub definitions YAML file
        """
        self.file_path = Path(file_path)

    def load(self) -> StubDefinitions:
        """
        Load config and stubs from the YAML file.

        Returns:
            StubDefinitions with config and stubs in file order

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the document is malformed
        """
        if not self.file_path.exists():
            raise FileNotFoundError(f"Stub definitions file not found: {self.file_path}")

        try:
            with open(self.file_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {self.file_path}: {e}") from e

        definitions = self.from_dict(data, source=str(self.file_path))
        logger.info(f"Loaded {len(definitions.stubs)} stubs from {self.file_path}")
        return definitions

    @classmethod
    def from_dict(cls, data: Any, source: str = "<dict>") -> StubDefinitions:
        """Build definitions from an already parsed document."""
        # A bare list is a list of stubs
        if isinstance(data, list):
            data = {'stubs': data}

        if not isinstance(data, dict):
            raise ValueError(
                f"Unexpected stub definitions format in {source}. "
                f"Expected a mapping or a list, got {type(data).__name__}"
            )

        stubs_data = data.get('stubs', [])
        if not isinstance(stubs_data, list):
            raise ValueError(f"'stubs' in {source} must be a list")

        config_data = data.get('config') or {}
        if not isinstance(config_data, dict):
            raise ValueError(f"'config' in {source} must be a mapping")

        stubs = [cls.build_stub(entry, index, source) for index, entry in enumerate(stubs_data)]
        return StubDefinitions(
            config=StubServerConfig.from_dict(config_data),
            stubs=stubs
        )

    @classmethod
    def build_stub(cls, entry: Dict[str, Any], index: int = 0, source: str = "<dict>") -> Stub:
        """Build one stub from its definition."""
        if not isinstance(entry, dict):
            raise ValueError(f"Stub #{index} in {source} must be a mapping")

        stub = Stub(
            condition=cls.build_condition(entry.get('when', {})),
            action=cls.build_action(entry.get('respond', {}))
        )

        sequence = entry.get('sequence')
        if sequence is not None:
            if not isinstance(sequence, list):
                raise ValueError(f"'sequence' of stub #{index} in {source} must be a list")
            stub.with_action_sequence(ActionSequence(*[cls.build_action(item) for item in sequence]))

        if 'times' in entry:
            stub.set_expected_times(int(entry['times']))

        return stub

    @staticmethod
    def build_condition(when: Dict[str, Any]) -> Condition:
        """
        Build a condition from a 'when' section.

        Supported keys: method, uri, uri_prefix, uri_regex, parameters,
        headers, body_contains, json.
        """
        if not isinstance(when, dict):
            raise ValueError(f"'when' must be a mapping, got {type(when).__name__}")

        parts = []
        if 'method' in when:
            parts.append(conditions.method(str(when['method'])))

        if 'uri' in when:
            path = str(when['uri'])
            if '*' in path or '{' in path:
                parts.append(conditions.uri_pattern(path))
            else:
                parts.append(conditions.uri(path))

        if 'uri_prefix' in when:
            parts.append(conditions.starts_with_uri(str(when['uri_prefix'])))

        if 'uri_regex' in when:
            parts.append(conditions.matches_uri(str(when['uri_regex'])))

        for name, values in _mapping(when, 'parameters').items():
            if values is None:
                parts.append(conditions.parameter(name))
            elif isinstance(values, list):
                parts.append(conditions.parameter(name, *[str(v) for v in values]))
            else:
                parts.append(conditions.parameter(name, str(values)))

        for name, value in _mapping(when, 'headers').items():
            parts.append(conditions.with_header(name, None if value is None else str(value)))

        if 'body_contains' in when:
            parts.append(conditions.with_post_body_containing(str(when['body_contains'])))

        if 'json' in when:
            if not isinstance(when['json'], dict):
                raise ValueError("'json' condition must be a mapping")
            parts.append(conditions.with_post_body_containing_json(when['json']))

        return Condition.composite(*parts)

    @staticmethod
    def build_action(respond: Dict[str, Any]) -> Action:
        """
        Build an action from a 'respond' (or sequence item) section.

        Supported keys: status, headers, content_type, body, json, delay_ms.
        """
        if not isinstance(respond, dict):
            raise ValueError(f"'respond' must be a mapping, got {type(respond).__name__}")

        parts = []
        if 'status' in respond:
            parts.append(actions.status(int(respond['status'])))

        if 'json' in respond:
            parts.append(actions.json_content(respond['json']))
        elif 'body' in respond:
            parts.append(actions.string_content(str(respond['body'])))

        if 'content_type' in respond:
            parts.append(actions.content_type(str(respond['content_type'])))

        for name, value in _mapping(respond, 'headers').items():
            parts.append(actions.header(name, str(value)))

        if respond.get('delay_ms'):
            parts.append(actions.delay(int(respond['delay_ms'])))

        return Action.composite(*parts)


def _mapping(section: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = section.get(key) or {}
    if not isinstance(value, dict):
        raise ValueError(f"'{key}' must be a mapping, got {type(value).__name__}")
    return value
