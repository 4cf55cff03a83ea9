"""
Wire naming for configuration settings.

Settings are persisted under snake_case keys derived from their identifier:
the first character is lowercased and every following uppercase character is
replaced by an underscore and its lowercase form. Acronyms are not treated
specially, so ``ID`` becomes ``i_d``.
"""

from typing import Protocol


class NamingPolicy(Protocol):
    """Protocol for converting identifiers to on-disk key names."""

    def convert_name(self, name: str) -> str:
        """Return the wire name for ``name``."""
        ...


class SnakeCaseNamingPolicy:
    """
    Convert identifier-style names to snake_case wire names.

    Examples:
        >>> policy = SnakeCaseNamingPolicy()
        >>> policy.convert_name("LogLevel")
        'log_level'
        >>> policy.convert_name("ID")
        'i_d'
    """

    def convert_name(self, name: str) -> str:
        if not name:
            return name

        parts = [name[0].lower()]
        for char in name[1:]:
            if char.isupper():
                parts.append("_")
                parts.append(char.lower())
            else:
                parts.append(char)
        return "".join(parts)


DEFAULT_NAMING_POLICY: NamingPolicy = SnakeCaseNamingPolicy()


def snake_case(name: str) -> str:
    """Convert ``name`` with the default snake_case policy."""
    return DEFAULT_NAMING_POLICY.convert_name(name)
