"""
SQL text processing with a single-pass tokenizer.

Command text is written with pyformat named placeholders, `%(name)s`. Before
execution the dialect strategy rewrites them:

    SQL → Tokenize → Rewrite placeholders → Split statements
          (once)      (per dialect)          (on top-level `;`)

String literals, quoted identifiers, comments and dollar-quoted bodies are
single tokens, so placeholders and semicolons inside them are left alone.

Main entry points:
- `standardize_placeholders()` - Convert %(name)s / %s to the dialect style
- `split_statements()` - Split a batch into individual statements
- `expand_parameter_list()` - Expand one placeholder into a list
- `quote_identifier()` - Quote table/column names
"""
import re
from dataclasses import dataclass
from enum import Enum, auto

__all__ = [
    'tokenize_sql',
    'standardize_placeholders',
    'split_statements',
    'expand_parameter_list',
    'quote_identifier',
]


class TokenType(Enum):
    """Token types identified during SQL parsing."""
    SQL_TEXT = auto()
    STRING_LITERAL = auto()
    QUOTED_IDENTIFIER = auto()
    COMMENT = auto()
    DOLLAR_QUOTED = auto()
    NAMED_PH = auto()           # %(name)s
    POSITIONAL_PH = auto()      # %s or ?
    ESCAPED_PERCENT = auto()    # %%
    SEMICOLON = auto()


@dataclass(slots=True)
class Token:
    """Token from SQL parsing."""
    type: TokenType
    text: str
    start: int
    end: int
    name: str | None = None


_TOKENIZE = re.compile(r"""
    (?P<string>'(?:[^']|'')*')
    |(?P<ident>"(?:[^"]|"")*")
    |(?P<line_comment>--[^\n]*)
    |(?P<block_comment>/\*.*?\*/)
    |(?P<dollar>\$(?P<tag>[A-Za-z_][A-Za-z_0-9]*|)\$.*?\$(?P=tag)\$)
    |(?P<named>%\((?P<pname>[^)]+)\)s)
    |(?P<percent_s>%s)
    |(?P<escaped>%%)
    |(?P<qmark>\?)
    |(?P<semicolon>;)
""", re.VERBOSE | re.DOTALL)

_GROUP_TYPES = {
    'string': TokenType.STRING_LITERAL,
    'ident': TokenType.QUOTED_IDENTIFIER,
    'line_comment': TokenType.COMMENT,
    'block_comment': TokenType.COMMENT,
    'dollar': TokenType.DOLLAR_QUOTED,
    'named': TokenType.NAMED_PH,
    'percent_s': TokenType.POSITIONAL_PH,
    'escaped': TokenType.ESCAPED_PERCENT,
    'qmark': TokenType.POSITIONAL_PH,
    'semicolon': TokenType.SEMICOLON,
}

# lone % inside a literal
_UNESCAPED_PERCENT = re.compile(r'(?<!%)%(?![%s(])')

def tokenize_sql(sql: str) -> list[Token]:
    """Tokens covering all of `sql`; joining their text gives `sql` back."""
    tokens = []
    last_end = 0

    for match in _TOKENIZE.finditer(sql):
        start, end = match.span()

        if start > last_end:
            tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:start], last_end, start))

        ttype = _GROUP_TYPES[match.lastgroup]
        name = match.group('pname') if ttype == TokenType.NAMED_PH else None
        tokens.append(Token(ttype, match.group(0), start, end, name))
        last_end = end

    if last_end < len(sql):
        tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:], last_end, len(sql)))

    return tokens


def _escape_percent_in_literal(literal: str) -> str:
    quote = literal[0]
    content = literal[1:-1]
    escaped = _UNESCAPED_PERCENT.sub('%%', content)
    return f'{quote}{escaped}{quote}'


def standardize_placeholders(sql: str, dialect: str = 'postgresql') -> str:
    """Convert placeholders to the dialect's parameter style.

    - sqlite: `%(name)s` becomes `:name`, `%s` becomes `?`, `%%` becomes `%`
    - postgresql: `?` becomes `%s`; percent signs inside string literals are
      escaped when the statement has placeholders (psycopg parses them)

    Parameters
        sql: SQL query string
        dialect: Database dialect

    Returns
        SQL with standardized placeholders
    """
    if not sql:
        return sql

    if '%' not in sql and '?' not in sql:
        return sql

    tokens = tokenize_sql(sql)
    result = []

    if dialect == 'sqlite':
        for token in tokens:
            if token.type == TokenType.NAMED_PH:
                result.append(f':{token.name}')
            elif token.type == TokenType.POSITIONAL_PH:
                result.append('?')
            elif token.type == TokenType.ESCAPED_PERCENT:
                result.append('%')
            else:
                result.append(token.text)
        return ''.join(result)

    if dialect == 'postgresql':
        parameterized = any(t.type in {TokenType.NAMED_PH, TokenType.POSITIONAL_PH}
                            for t in tokens)
        for token in tokens:
            if token.type == TokenType.POSITIONAL_PH:
                result.append('%s')
            elif token.type == TokenType.STRING_LITERAL and parameterized:
                result.append(_escape_percent_in_literal(token.text))
            elif token.type == TokenType.ESCAPED_PERCENT and not parameterized:
                result.append('%')
            else:
                result.append(token.text)
        return ''.join(result)

    return sql


def split_statements(sql: str) -> list[str]:
    """Split a batch on top-level semicolons.

    Empty statements (and statements that are only comments) are dropped.
    """
    if not sql:
        return []

    statements = []
    current: list[str] = []
    meaningful = False
    for token in tokenize_sql(sql):
        if token.type == TokenType.SEMICOLON:
            if meaningful:
                statements.append(''.join(current).strip())
            current, meaningful = [], False
            continue
        current.append(token.text)
        if token.type != TokenType.COMMENT and token.text.strip():
            meaningful = True
    if meaningful:
        statements.append(''.join(current).strip())
    return statements


def expand_parameter_list(sql: str, name: str, count: int) -> tuple[str, list[str]]:
    """Replace `%(name)s` with `%(name_0)s, %(name_1)s, ...`.

    Returns the new text and the generated parameter names. Raises KeyError
    when the text has no `%(name)s` placeholder.
    """
    names = [f'{name}_{i}' for i in range(count)]
    replacement = ', '.join(f'%({n})s' for n in names)
    found = False
    result = []
    for token in tokenize_sql(sql):
        if token.type == TokenType.NAMED_PH and token.name == name:
            result.append(replacement)
            found = True
        else:
            result.append(token.text)
    if not found:
        raise KeyError(name)
    return ''.join(result), names


def quote_identifier(identifier: str, dialect: str = 'postgresql') -> str:
    """Double-quote a table or column name, doubling embedded quotes."""
    if dialect in {'postgresql', 'sqlite'}:
        return '"' + identifier.replace('"', '""') + '"'

    raise ValueError(f'Unknown dialect: {dialect}')
