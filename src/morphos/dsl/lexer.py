"""
Lexer for the MORPHOS script language (JSCAD-style JavaScript subset).

Converts source text into a stream of tokens for the parser.
Supports:
- Single-line (//) and multi-line (/* */) comments
- String literals in single or double quotes with escape sequences
- Template literals without ${...} interpolation
- Number literals (decimal, float, scientific notation, hexadecimal, leading '.')
- All keywords, operators and punctuation of the subset

Line breaks are not tokens; each token instead records whether a line break
preceded it so the parser can apply automatic semicolon insertion.
"""

from typing import List, Optional, Iterator
from .tokens import Token, TokenType, SourceLocation, SourceSpan, KEYWORDS
from .errors import (
    error_unexpected_character,
    error_unterminated_string,
    error_unterminated_comment,
    error_invalid_escape_sequence,
    error_invalid_number_literal,
    error_invalid_hex_literal,
    error_template_interpolation,
)


# Longest operators first so that '===' wins over '==' and '='
_OPERATORS = [
    ("**=", TokenType.POWER_ASSIGN),
    ("===", TokenType.STRICT_EQ),
    ("!==", TokenType.STRICT_NE),
    ("...", TokenType.ELLIPSIS),
    ("=>", TokenType.ARROW),
    ("==", TokenType.EQ),
    ("!=", TokenType.NE),
    ("<=", TokenType.LE),
    (">=", TokenType.GE),
    ("&&", TokenType.AND),
    ("||", TokenType.OR),
    ("??", TokenType.NULLISH),
    ("?.", TokenType.OPTIONAL_DOT),
    ("**", TokenType.DOUBLE_STAR),
    ("++", TokenType.PLUS_PLUS),
    ("--", TokenType.MINUS_MINUS),
    ("+=", TokenType.PLUS_ASSIGN),
    ("-=", TokenType.MINUS_ASSIGN),
    ("*=", TokenType.STAR_ASSIGN),
    ("/=", TokenType.SLASH_ASSIGN),
    ("%=", TokenType.PERCENT_ASSIGN),
    ("+", TokenType.PLUS),
    ("-", TokenType.MINUS),
    ("*", TokenType.STAR),
    ("/", TokenType.SLASH),
    ("%", TokenType.PERCENT),
    ("<", TokenType.LT),
    (">", TokenType.GT),
    ("=", TokenType.ASSIGN),
    ("!", TokenType.NOT),
    ("?", TokenType.QUESTION),
    (":", TokenType.COLON),
    (";", TokenType.SEMICOLON),
    (",", TokenType.COMMA),
    (".", TokenType.DOT),
    ("(", TokenType.LPAREN),
    (")", TokenType.RPAREN),
    ("[", TokenType.LBRACKET),
    ("]", TokenType.RBRACKET),
    ("{", TokenType.LBRACE),
    ("}", TokenType.RBRACE),
]

_HEX_DIGITS = "0123456789abcdefABCDEF"


class Lexer:
    """
    Tokenizer for the script language.

    Usage:
        lexer = Lexer(source_code)
        tokens = lexer.tokenize()

    Or for streaming:
        lexer = Lexer(source_code)
        for token in lexer:
            process(token)
    """

    def __init__(self, source: str, filename: Optional[str] = None):
        self.source = source
        self.filename = filename
        self.pos = 0            # Current position in source
        self.line = 1           # Current line (1-indexed)
        self.column = 1         # Current column (1-indexed)
        self._lines: Optional[List[str]] = None  # Cached line list
        self._saw_newline = False

    @property
    def lines(self) -> List[str]:
        """Lazy-load line list for error reporting."""
        if self._lines is None:
            self._lines = self.source.splitlines()
        return self._lines

    def get_source_line(self, line_num: int) -> Optional[str]:
        """Get a specific line of source (1-indexed)."""
        if 1 <= line_num <= len(self.lines):
            return self.lines[line_num - 1]
        return None

    def _location(self) -> SourceLocation:
        """Get current source location."""
        return SourceLocation(self.line, self.column, self.pos, self.filename)

    def _span(self, start: SourceLocation) -> SourceSpan:
        """Create a span from start to current position."""
        return SourceSpan(start, self._location())

    def _peek(self, offset: int = 0) -> str:
        """Look at character at current position + offset without consuming."""
        idx = self.pos + offset
        if idx >= len(self.source):
            return '\0'
        return self.source[idx]

    def _advance(self) -> str:
        """Consume and return current character."""
        if self.pos >= len(self.source):
            return '\0'
        ch = self.source[self.pos]
        self.pos += 1
        if ch == '\n':
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return ch

    def _is_at_end(self) -> bool:
        """Check if we've reached end of source."""
        return self.pos >= len(self.source)

    def _make_token(self, token_type: TokenType, value, start: SourceLocation,
                    lexeme: Optional[str] = None) -> Token:
        """Create a token, consuming the pending newline flag."""
        span = self._span(start)
        if lexeme is None:
            lexeme = self.source[start.offset:self.pos]
        token = Token(token_type, value, lexeme, span, self._saw_newline)
        self._saw_newline = False
        return token

    def _skip_trivia(self) -> None:
        """Skip whitespace and comments, remembering whether a newline was crossed."""
        while not self._is_at_end():
            ch = self._peek()
            if ch == '\n':
                self._saw_newline = True
                self._advance()
            elif ch in ' \t\r\f\v\ufeff\xa0':
                self._advance()
            elif ch == '/' and self._peek(1) == '/':
                while self._peek() != '\n' and not self._is_at_end():
                    self._advance()
            elif ch == '/' and self._peek(1) == '*':
                self._skip_multiline_comment()
            else:
                break

    def _skip_multiline_comment(self) -> None:
        """Skip /* ... */ comment (not nested, as in JavaScript)."""
        start = self._location()
        self._advance()  # consume '/'
        self._advance()  # consume '*'
        while not self._is_at_end():
            if self._peek() == '*' and self._peek(1) == '/':
                self._advance()
                self._advance()
                return
            if self._advance() == '\n':
                self._saw_newline = True
        raise error_unterminated_comment(
            self._span(start),
            self.get_source_line(start.line)
        )

    def _scan_string(self) -> Token:
        """Scan a quoted string literal."""
        start = self._location()
        quote = self._advance()  # consume opening quote

        chars = []
        while not self._is_at_end() and self._peek() != quote:
            ch = self._peek()
            if ch == '\n':
                raise error_unterminated_string(
                    self._span(start),
                    self.get_source_line(start.line)
                )
            if ch == '\\':
                self._advance()  # consume backslash
                chars.append(self._scan_escape_sequence())
            else:
                chars.append(self._advance())

        if self._is_at_end():
            raise error_unterminated_string(
                self._span(start),
                self.get_source_line(start.line)
            )

        self._advance()  # consume closing quote
        return self._make_token(TokenType.STRING, ''.join(chars), start)

    def _scan_template(self) -> Token:
        """Scan a backtick template literal without interpolation."""
        start = self._location()
        self._advance()  # consume '`'

        chars = []
        while not self._is_at_end() and self._peek() != '`':
            ch = self._peek()
            if ch == '$' and self._peek(1) == '{':
                raise error_template_interpolation(
                    self._span(start),
                    self.get_source_line(start.line)
                )
            if ch == '\\':
                self._advance()
                chars.append(self._scan_escape_sequence())
            else:
                chars.append(self._advance())

        if self._is_at_end():
            raise error_unterminated_string(
                self._span(start),
                self.get_source_line(start.line)
            )

        self._advance()  # consume closing backtick
        return self._make_token(TokenType.STRING, ''.join(chars), start)

    def _scan_escape_sequence(self) -> str:
        """Parse an escape sequence after backslash."""
        esc_start = self._location()
        if self._is_at_end():
            raise error_invalid_escape_sequence(
                "", self._span(esc_start), self.get_source_line(esc_start.line)
            )

        ch = self._advance()
        escape_chars = {
            'n': '\n',
            't': '\t',
            'r': '\r',
            'b': '\b',
            'f': '\f',
            'v': '\v',
            '\\': '\\',
            '"': '"',
            "'": "'",
            '`': '`',
            '0': '\0',
            '\n': '',   # line continuation
        }

        if ch in escape_chars:
            return escape_chars[ch]
        if ch in 'xu':
            width = 2 if ch == 'x' else 4
            hex_chars = ''
            for _ in range(width):
                hex_chars += self._advance()
            try:
                return chr(int(hex_chars, 16))
            except ValueError:
                raise error_invalid_escape_sequence(
                    f"{ch}{hex_chars}", self._span(esc_start),
                    self.get_source_line(esc_start.line)
                )
        # JavaScript keeps unknown escapes as the character itself
        return ch

    def _scan_number(self) -> Token:
        """Scan a numeric literal."""
        start = self._location()

        if self._peek() == '0' and self._peek(1) in 'xX':
            return self._scan_hex_number(start)

        is_float = False
        while self._peek().isdigit():
            self._advance()

        if self._peek() == '.' and (self._peek(1).isdigit() or start.offset == self.pos):
            is_float = True
            self._advance()  # consume '.'
            while self._peek().isdigit():
                self._advance()

        # Scientific notation
        if self._peek() in 'eE':
            is_float = True
            self._advance()  # consume 'e'
            if self._peek() in '+-':
                self._advance()
            if not self._peek().isdigit():
                lexeme = self.source[start.offset:self.pos]
                raise error_invalid_number_literal(
                    lexeme, self._span(start), self.get_source_line(start.line)
                )
            while self._peek().isdigit():
                self._advance()

        # 3in, 2px and the like
        if self._peek().isalpha() or self._peek() in '_$':
            while self._peek().isalnum() or self._peek() in '_$':
                self._advance()
            lexeme = self.source[start.offset:self.pos]
            raise error_invalid_number_literal(
                lexeme, self._span(start), self.get_source_line(start.line)
            )

        lexeme = self.source[start.offset:self.pos]
        try:
            value = float(lexeme) if is_float else int(lexeme)
        except ValueError:
            raise error_invalid_number_literal(
                lexeme, self._span(start), self.get_source_line(start.line)
            )
        return self._make_token(TokenType.NUMBER, value, start, lexeme)

    def _scan_hex_number(self, start: SourceLocation) -> Token:
        """Scan a hexadecimal integer literal (0x...)."""
        self._advance()  # consume '0'
        self._advance()  # consume 'x' or 'X'

        if self._peek() not in _HEX_DIGITS:
            lexeme = self.source[start.offset:self.pos]
            raise error_invalid_hex_literal(
                lexeme, self._span(start), self.get_source_line(start.line)
            )

        while self._peek() in _HEX_DIGITS:
            self._advance()

        lexeme = self.source[start.offset:self.pos]
        return self._make_token(TokenType.NUMBER, int(lexeme, 16), start, lexeme)

    def _scan_identifier_or_keyword(self) -> Token:
        """Scan an identifier or keyword."""
        start = self._location()

        while self._peek().isalnum() or self._peek() in '_$':
            self._advance()

        lexeme = self.source[start.offset:self.pos]

        if lexeme in KEYWORDS:
            return self._make_token(KEYWORDS[lexeme], lexeme, start, lexeme)

        return self._make_token(TokenType.IDENTIFIER, lexeme, start, lexeme)

    def _scan_token(self) -> Token:
        """Scan the next token."""
        self._skip_trivia()

        if self._is_at_end():
            return self._make_token(TokenType.EOF, None, self._location(), "")

        start = self._location()
        ch = self._peek()

        if ch in '"\'':
            return self._scan_string()

        if ch == '`':
            return self._scan_template()

        if ch.isdigit() or (ch == '.' and self._peek(1).isdigit()):
            return self._scan_number()

        if ch.isalpha() or ch in '_$':
            return self._scan_identifier_or_keyword()

        for text, token_type in _OPERATORS:
            if self.source.startswith(text, self.pos):
                # '?.' followed by a digit is a conditional, as in a?.5:1
                if token_type == TokenType.OPTIONAL_DOT and self._peek(2).isdigit():
                    continue
                for _ in text:
                    self._advance()
                return self._make_token(token_type, text, start)

        self._advance()
        raise error_unexpected_character(
            ch, self._span(start), self.get_source_line(start.line)
        )

    def tokenize(self) -> List[Token]:
        """Tokenize the entire source, returning a list of tokens."""
        tokens = []
        while True:
            token = self._scan_token()
            tokens.append(token)
            if token.type == TokenType.EOF:
                break
        return tokens

    def __iter__(self) -> Iterator[Token]:
        """Iterate over tokens."""
        while True:
            token = self._scan_token()
            yield token
            if token.type == TokenType.EOF:
                break


def tokenize(source: str, filename: Optional[str] = None) -> List[Token]:
    """
    Convenience function to tokenize source code.

    Args:
        source: The source code to tokenize
        filename: Optional filename for error messages

    Returns:
        List of tokens

    Raises:
        LexerError: If tokenization fails
    """
    lexer = Lexer(source, filename)
    return lexer.tokenize()
