"""
Unit tests for the script lexer.
"""

import pytest
from morphos.dsl import tokenize, Lexer, TokenType, LexerError


def _types(source):
    return [t.type for t in tokenize(source)]


class TestLexerBasics:
    """Test basic lexer functionality."""

    def test_empty_source(self):
        """Empty source produces only EOF."""
        tokens = tokenize("")
        assert len(tokens) == 1
        assert tokens[0].type == TokenType.EOF

    def test_whitespace_only(self):
        """Whitespace-only source produces only EOF."""
        assert _types("   \t \n  ") == [TokenType.EOF]

    def test_simple_const_statement(self):
        """Basic const statement tokenization."""
        assert _types("const x = 42;") == [
            TokenType.CONST,
            TokenType.IDENTIFIER,
            TokenType.ASSIGN,
            TokenType.NUMBER,
            TokenType.SEMICOLON,
            TokenType.EOF,
        ]

    def test_identifier_value(self):
        """Identifiers may contain $ and _."""
        tokens = tokenize("$foo_bar123")
        assert tokens[0].type == TokenType.IDENTIFIER
        assert tokens[0].value == "$foo_bar123"

    def test_of_is_an_identifier(self):
        """'of' is contextual, not a keyword."""
        tokens = tokenize("of")
        assert tokens[0].type == TokenType.IDENTIFIER

    def test_position_tracking(self):
        """Token positions are tracked correctly."""
        tokens = tokenize("let x = 5;")
        assert tokens[0].span.start.line == 1
        assert tokens[0].span.start.column == 1
        assert tokens[1].span.start.column == 5

    def test_multiline_position_tracking(self):
        """Position tracking across multiple lines."""
        tokens = tokenize("let x = 5;\nlet y = 10;")
        let_tokens = [t for t in tokens if t.type == TokenType.LET]
        assert let_tokens[0].span.start.line == 1
        assert let_tokens[1].span.start.line == 2

    def test_newline_before_flag(self):
        """Tokens after a line break are flagged for semicolon insertion."""
        tokens = tokenize("a\nb c")
        assert not tokens[0].newline_before
        assert tokens[1].newline_before
        assert not tokens[2].newline_before

    def test_lexer_is_iterable(self):
        """Lexer can be iterated lazily."""
        types = [t.type for t in Lexer("x + 1")]
        assert types == [TokenType.IDENTIFIER, TokenType.PLUS, TokenType.NUMBER, TokenType.EOF]


class TestComments:
    """Test comment handling."""

    def test_single_line_comment(self):
        """Line comments are skipped."""
        assert _types("// a comment\nlet") == [TokenType.LET, TokenType.EOF]

    def test_multiline_comment(self):
        """Block comments are skipped and count as a line break."""
        tokens = tokenize("a /* one\ntwo */ b")
        assert [t.type for t in tokens] == [TokenType.IDENTIFIER, TokenType.IDENTIFIER, TokenType.EOF]
        assert tokens[1].newline_before

    def test_unterminated_comment(self):
        """An unterminated block comment is an error."""
        with pytest.raises(LexerError) as exc_info:
            tokenize("a /* never closed")
        assert exc_info.value.diagnostic.code == "E004"


class TestNumbers:
    """Test numeric literals."""

    @pytest.mark.parametrize("source,expected", [
        ("42", 42),
        ("3.25", 3.25),
        (".5", 0.5),
        ("1e3", 1000.0),
        ("2.5E-2", 0.025),
        ("0xff", 255),
        ("0XA", 10),
    ])
    def test_number_values(self, source, expected):
        """Numeric literals evaluate to Python numbers."""
        token = tokenize(source)[0]
        assert token.type == TokenType.NUMBER
        assert token.value == expected

    def test_integer_stays_int(self):
        """Integer literals keep an int value."""
        assert isinstance(tokenize("7")[0].value, int)

    def test_number_then_member(self):
        """A trailing dot without digits is a separate token."""
        assert _types("1.x") == [TokenType.NUMBER, TokenType.DOT, TokenType.IDENTIFIER, TokenType.EOF]

    def test_bad_exponent(self):
        """An exponent without digits is rejected."""
        with pytest.raises(LexerError) as exc_info:
            tokenize("1e+")
        assert exc_info.value.diagnostic.code == "E006"

    def test_unit_suffix_rejected(self):
        """Letters glued to a number are rejected."""
        with pytest.raises(LexerError) as exc_info:
            tokenize("3mm")
        assert exc_info.value.diagnostic.code == "E006"

    def test_bad_hex(self):
        """0x without digits is rejected."""
        with pytest.raises(LexerError) as exc_info:
            tokenize("0x")
        assert exc_info.value.diagnostic.code == "E007"


class TestStrings:
    """Test string and template literals."""

    def test_double_and_single_quotes(self):
        """Both quote styles produce STRING tokens."""
        tokens = tokenize("'a' \"b\"")
        assert [(t.type, t.value) for t in tokens[:2]] == [
            (TokenType.STRING, "a"),
            (TokenType.STRING, "b"),
        ]

    def test_escape_sequences(self):
        """Common escapes are decoded."""
        assert tokenize(r"'a\n\t\'b\\'")[0].value == "a\n\t'b\\"

    def test_unicode_escapes(self):
        """Hex and unicode escapes are decoded."""
        assert tokenize(r"'\x41B'")[0].value == "AB"

    def test_unknown_escape_kept(self):
        """Unknown escapes keep the character."""
        assert tokenize(r"'\q'")[0].value == "q"

    def test_invalid_unicode_escape(self):
        """A malformed \\u escape is an error."""
        with pytest.raises(LexerError) as exc_info:
            tokenize(r"'\uZZZZ'")
        assert exc_info.value.diagnostic.code == "E005"

    def test_unterminated_string(self):
        """A string broken by a newline is an error."""
        with pytest.raises(LexerError) as exc_info:
            tokenize("'abc\n'")
        assert exc_info.value.diagnostic.code == "E002"

    def test_template_without_interpolation(self):
        """Plain template literals are strings."""
        token = tokenize("`multi\nline`")[0]
        assert token.type == TokenType.STRING
        assert token.value == "multi\nline"

    def test_template_interpolation_rejected(self):
        """Interpolation is not supported."""
        with pytest.raises(LexerError) as exc_info:
            tokenize("`size ${n}`")
        assert exc_info.value.diagnostic.code == "E008"


class TestKeywordsAndOperators:
    """Test keyword and operator recognition."""

    @pytest.mark.parametrize("word,token_type", [
        ("const", TokenType.CONST),
        ("function", TokenType.FUNCTION),
        ("typeof", TokenType.TYPEOF),
        ("null", TokenType.NULL),
        ("undefined", TokenType.UNDEFINED),
        ("true", TokenType.TRUE),
        ("class", TokenType.CLASS),
        ("import", TokenType.IMPORT),
        ("await", TokenType.AWAIT),
    ])
    def test_keywords(self, word, token_type):
        """Keywords, including unsupported ones, get their own type."""
        assert tokenize(word)[0].type == token_type

    def test_longest_operator_wins(self):
        """Multi-character operators are matched greedily."""
        assert _types("a === b !== c ** d ??= e")[:8] == [
            TokenType.IDENTIFIER, TokenType.STRICT_EQ,
            TokenType.IDENTIFIER, TokenType.STRICT_NE,
            TokenType.IDENTIFIER, TokenType.DOUBLE_STAR,
            TokenType.IDENTIFIER, TokenType.NULLISH,
        ]

    def test_arrow_and_spread(self):
        """Arrow and spread tokens."""
        assert _types("(...a) => a") == [
            TokenType.LPAREN, TokenType.ELLIPSIS, TokenType.IDENTIFIER,
            TokenType.RPAREN, TokenType.ARROW, TokenType.IDENTIFIER, TokenType.EOF,
        ]

    def test_optional_chaining(self):
        """?. is optional chaining unless a digit follows."""
        assert _types("a?.b")[1] == TokenType.OPTIONAL_DOT
        assert _types("a?.5:1")[1] == TokenType.QUESTION

    def test_unexpected_character(self):
        """Characters outside the language are rejected."""
        with pytest.raises(LexerError) as exc_info:
            tokenize("a # b")
        assert exc_info.value.diagnostic.code == "E001"

    def test_error_formats_source_line(self):
        """Diagnostics show the offending line with a caret."""
        with pytest.raises(LexerError) as exc_info:
            tokenize("let x = 1;\nlet y = @;")
        text = str(exc_info.value)
        assert "error[E001]" in text
        assert "let y = @;" in text
        assert "^" in text
