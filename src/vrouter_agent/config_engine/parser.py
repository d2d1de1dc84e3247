"""Parser for the device's brace-delimited configuration text.

Converts the output of ``cli-shell-api showCfg`` into a ConfigTree:

    interfaces {
        ethernet eth0 {
            address 10.0.0.1/24
            hw-id 52:54:00:12:34:56
        }
    }
"""
import logging
from enum import Enum

from ..errors import AgentError
from .tree import ConfigNode, ConfigTree

logger = logging.getLogger(__name__)

OPEN_BRACE = "{"
CLOSE_BRACE = "}"
QUOTE = '"'


class ParseError(AgentError):
    """Malformed configuration text."""

    def __init__(self, message: str, tokens: list[str] | None = None, line: int = 0):
        super().__init__(message)
        self.tokens = tokens or []
        self.line = line


class LineRole(Enum):
    """Shape of a single configuration line."""
    BLOCK = "block"              # "nat {"
    ATTRIBUTE_BLOCK = "attr"     # "rule 1 {"
    KEY_VALUE = "key_value"      # "address 10.0.0.1/24"
    CLOSE = "close"              # "}"
    IGNORE = "ignore"            # blank line


def classify(tokens: list[str]) -> LineRole:
    """
    Classify a tokenized line.

    Raises:
        ParseError: If the tokens match no known line shape
    """
    count = len(tokens)
    if count == 0:
        return LineRole.IGNORE
    if count == 1 and tokens[0] == CLOSE_BRACE:
        return LineRole.CLOSE

    last = tokens[-1]
    if count == 2 and last == OPEN_BRACE:
        return LineRole.BLOCK
    if count > 2 and last == OPEN_BRACE:
        return LineRole.ATTRIBUTE_BLOCK
    if count >= 2 and last != CLOSE_BRACE:
        return LineRole.KEY_VALUE

    raise ParseError(
        f"unable to parse the words: {' '.join(tokens)}", tokens=tokens
    )


def leaf_value(line: str, key: str) -> str:
    """
    Value of a key/value line: everything after the key, with one pair of
    surrounding double quotes removed (``description "to core"`` -> ``to core``).
    """
    value = line.strip()[len(key):].strip()
    if len(value) >= 2 and value[0] == value[-1] == QUOTE:
        value = value[1:-1]
    return value


class ConfigParser:
    """Build a ConfigTree from configuration text."""

    def parse(self, text: str) -> ConfigTree:
        """
        Parse configuration text into a fresh tree.

        Args:
            text: Configuration in the device's brace grammar

        Returns:
            ConfigTree with an empty change log

        Raises:
            ParseError: On any malformed line, an unmatched closing brace,
                or blocks left open at the end of input
        """
        tree = ConfigTree()
        stack: list[ConfigNode] = []
        current = tree.root

        for lineno, line in enumerate(text.splitlines(), start=1):
            tokens = line.split()
            try:
                role = classify(tokens)
            except ParseError as e:
                e.line = lineno
                raise

            if role is LineRole.IGNORE:
                continue

            if role is LineRole.BLOCK:
                stack.append(current)
                current = current.add_child(tokens[0])

            elif role is LineRole.ATTRIBUTE_BLOCK:
                # one stack entry for the whole path; its "}" pops it at once
                stack.append(current)
                for name in tokens[:-1]:
                    current = current.add_child(name)

            elif role is LineRole.KEY_VALUE:
                current.add_child(tokens[0]).add_child(leaf_value(line, tokens[0]))

            elif role is LineRole.CLOSE:
                if not stack:
                    raise ParseError(
                        f"unmatched '{CLOSE_BRACE}' at line {lineno}",
                        tokens=tokens,
                        line=lineno,
                    )
                current = stack.pop()

        if stack:
            raise ParseError(
                f"unexpected end of configuration: {len(stack)} block(s) "
                f"still open at [{current}]"
            )

        logger.debug(f"Parsed configuration with {len(tree.root.children)} top-level nodes")
        return tree


def parse_config(text: str) -> ConfigTree:
    """Parse configuration text with a default ConfigParser."""
    return ConfigParser().parse(text)
