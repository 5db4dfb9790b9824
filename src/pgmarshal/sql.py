"""
Parameterized command builder.

    Sql('INSERT INTO t (name, data) VALUES ($1, $2::bytea)').arg(name).arg(data)

Placeholders are counted with a plain scan for ``$``. A ``$`` inside a
string literal or a dollar-quoted body is counted too, so such commands
need a matching number of arguments or they are rejected by ``valid()``.
Concatenating commands joins templates and parameter lists as they are;
placeholders in the right operand are not renumbered.
"""
import logging
import re
from typing import Any, Self
from pgmarshal.params import DEFAULT_CODEC, SqlParameterList

logger = logging.getLogger(__name__)

__all__ = ['Sql', 'PARAM_PREFIX', 'MAX_PARAMETERS']

PARAM_PREFIX = b'$'

# Bind messages carry the parameter count as Int16
MAX_PARAMETERS = 65535

_PLACEHOLDER = re.compile(rb'\$(\d+)')


class Sql:
    """Command template plus its positional parameters.
    """

    def __init__(self, command: str | bytes = b'', encoding: str = DEFAULT_CODEC) -> None:
        self.encoding = encoding
        self._command = self._encode(command)
        self._params = SqlParameterList(encoding)

    def _encode(self, text: str | bytes) -> bytes:
        if isinstance(text, str):
            return text.encode(self.encoding, 'replace')
        return bytes(text)

    def __repr__(self) -> str:
        return f'Sql({self._command!r}, params={len(self._params)})'

    def __iadd__(self, other: 'Sql | str | bytes') -> Self:
        if isinstance(other, Sql):
            self._command += other._command
            self._params += other._params
        else:
            self._command += self._encode(other)
        return self

    def __add__(self, other: 'Sql | str | bytes') -> 'Sql':
        result = self.copy()
        result += other
        return result

    def copy(self) -> 'Sql':
        result = Sql(self._command, self.encoding)
        result._params = self._params.copy()
        return result

    def arg(self, value: Any) -> Self:
        """Attach the next positional argument.
        """
        self._params.arg(value)
        return self

    @property
    def command(self) -> bytes:
        return self._command

    @property
    def params(self) -> SqlParameterList:
        return self._params

    def placeholder_count(self) -> int:
        return self._command.count(PARAM_PREFIX)

    def valid(self) -> bool:
        """Check that template, payloads, formats and placeholders agree.
        """
        count = self._params.size()
        return (
            bool(self._command)
            and count <= MAX_PARAMETERS
            and count == len(self._params.params)
            and count == len(self._params.formats)
            and count == self.placeholder_count()
            )

    def render(self) -> str:
        """Return the command with text parameters substituted in place.

        Binary parameters are left as their ``$N`` marker.
        """
        text_params = {
            n: param.param
            for n, param in enumerate(self._params.param_with_format(), start=1)
            if not param.format
            }

        def substitute(match: re.Match) -> bytes:
            return text_params.get(int(match.group(1)), match.group(0))

        return _PLACEHOLDER.sub(substitute, self._command).decode(self.encoding, 'replace')

    def debug(self) -> None:
        logger.debug(self.render())
