"""
Lexer for the Arta query language.

Converts source text into a stream of tokens for the parser.
Supports:
- Case-insensitive keywords
- Line comments introduced by --, # or //
- Significant newlines (NEWLINE tokens) and ';' separators
- Double-quoted string literals with escape sequences
- Numbers (optionally negative, optionally fractional)
- Size literals with a 1024-based unit suffix (100MB, 1.5GB)
- Bare paths (/tmp, ~/logs, ./build, logs/app.log)
"""

import math
from typing import List, Optional
from .tokens import Token, TokenType, SourceLocation, SourceSpan, KEYWORDS, SIZE_UNITS
from .errors import (
    error_unexpected_character,
    error_unterminated_string,
    error_invalid_number_literal,
)

# Characters allowed inside a bare path after its first character
PATH_CHARS = frozenset(
    "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789_-./~+@"
)


def parse_size(number_text: str, unit: str) -> int:
    """
    Convert a size literal to bytes.

    The multiplication is done exactly (fractions go through str-to-decimal
    parsing of the integer and fractional parts) and the result is floored.
    """
    multiplier = SIZE_UNITS[unit.upper()]
    if "." in number_text:
        whole, frac = number_text.split(".", 1)
        whole = whole or "0"
        scale = 10 ** len(frac)
        numerator = (int(whole) * scale + int(frac or "0")) * multiplier
        return numerator // scale
    return int(number_text) * multiplier


class Lexer:
    """
    Tokenizer for the Arta query language.

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

    def _match(self, expected: str) -> bool:
        """Consume character if it matches expected."""
        if self._peek() == expected:
            self._advance()
            return True
        return False

    def _is_at_end(self) -> bool:
        """Check if we've reached end of source."""
        return self.pos >= len(self.source)

    def _at_comment(self) -> bool:
        ch = self._peek()
        if ch == '#':
            return True
        if ch == '-' and self._peek(1) == '-':
            return True
        return ch == '/' and self._peek(1) == '/'

    def _skip_comment(self) -> None:
        """Skip a line comment up to (not including) the newline."""
        while self._peek() != '\n' and not self._is_at_end():
            self._advance()

    def _skip_whitespace_within_line(self) -> None:
        """Skip horizontal whitespace, not newlines."""
        while self._peek() in ' \t\r':
            self._advance()

    def _make_token(self, token_type: TokenType, value, start: SourceLocation,
                    lexeme: Optional[str] = None) -> Token:
        """Create a token."""
        span = self._span(start)
        if lexeme is None:
            lexeme = self.source[start.offset:self.pos]
        return Token(token_type, value, lexeme, span)

    def _scan_string(self) -> Token:
        """Scan a double-quoted string literal."""
        start = self._location()
        self._advance()  # consume opening quote

        chars = []
        while not self._is_at_end() and self._peek() != '"':
            ch = self._peek()
            if ch == '\n':
                raise error_unterminated_string(
                    self._span(start),
                    self.get_source_line(start.line)
                )
            if ch == '\\' and self._peek(1) in '"\\':
                self._advance()
            chars.append(self._advance())

        if self._is_at_end():
            raise error_unterminated_string(
                self._span(start),
                self.get_source_line(start.line)
            )

        self._advance()  # consume closing quote
        return self._make_token(TokenType.STRING, ''.join(chars), start)

    def _scan_number(self) -> Token:
        """Scan a number, or a size literal when a unit suffix follows."""
        start = self._location()
        self._match('-')

        while self._peek().isdigit():
            self._advance()
        if self._peek() == '.' and self._peek(1).isdigit():
            self._advance()  # consume '.'
            while self._peek().isdigit():
                self._advance()
        number_text = self.source[start.offset:self.pos]

        # Unit suffix turns the number into a size literal
        if self._peek().isalpha():
            unit_start = self.pos
            while self._peek().isalnum() or self._peek() == '_':
                self._advance()
            unit = self.source[unit_start:self.pos]
            lexeme = self.source[start.offset:self.pos]
            if unit.upper() not in SIZE_UNITS or number_text.startswith('-'):
                raise error_invalid_number_literal(
                    lexeme, self._span(start), self.get_source_line(start.line)
                )
            return self._make_token(TokenType.SIZE, parse_size(number_text, unit), start, lexeme)

        value = float(number_text)
        if math.isinf(value):
            raise error_invalid_number_literal(
                number_text, self._span(start), self.get_source_line(start.line)
            )
        return self._make_token(TokenType.NUMBER, value, start, number_text)

    def _scan_path(self, start: SourceLocation) -> Token:
        """Continue scanning a bare path whose first characters are consumed."""
        while self._peek() in PATH_CHARS:
            # A comment marker ends the path
            if self._peek() == '/' and self._peek(1) == '/':
                break
            if self._peek() == '-' and self._peek(1) == '-':
                break
            self._advance()
        lexeme = self.source[start.offset:self.pos]
        return self._make_token(TokenType.PATH, lexeme, start, lexeme)

    def _scan_word(self) -> Token:
        """Scan a keyword, identifier, or a relative path such as logs/app.log."""
        start = self._location()

        while self._peek().isalnum() or self._peek() in '_.':
            self._advance()

        if self._peek() == '/' and self._peek(1) != '/':
            return self._scan_path(start)

        lexeme = self.source[start.offset:self.pos]
        keyword = KEYWORDS.get(lexeme.upper())
        if keyword is not None:
            if keyword == TokenType.BOOL_LITERAL:
                return self._make_token(keyword, lexeme.upper() == "TRUE", start, lexeme)
            return self._make_token(keyword, lexeme.upper(), start, lexeme)

        return self._make_token(TokenType.IDENTIFIER, lexeme, start, lexeme)

    def _scan_token(self) -> Token:
        """Scan the next token."""
        self._skip_whitespace_within_line()
        while self._at_comment():
            self._skip_comment()
            self._skip_whitespace_within_line()

        start = self._location()

        if self._is_at_end():
            return self._make_token(TokenType.EOF, None, start, "")

        ch = self._peek()

        if ch == '\n':
            self._advance()
            return self._make_token(TokenType.NEWLINE, None, start, "\\n")

        if ch == '"':
            return self._scan_string()

        if ch.isdigit() or (ch == '-' and self._peek(1).isdigit()):
            return self._scan_number()

        if ch.isalpha() or ch == '_':
            return self._scan_word()

        # Bare paths: /abs, ~/home, ./rel, ../up
        if ch == '/' or (ch == '~' and self._peek(1) in '/\0 \t\n;') or \
                (ch == '.' and self._peek(1) in './\0 \t\n;'):
            self._advance()
            return self._scan_path(start)

        self._advance()

        if ch == '!' and self._match('='):
            return self._make_token(TokenType.NE, "!=", start)
        if ch == '<' and self._match('='):
            return self._make_token(TokenType.LE, "<=", start)
        if ch == '>' and self._match('='):
            return self._make_token(TokenType.GE, ">=", start)
        if ch == '=' and self._match('='):
            return self._make_token(TokenType.EQ, "==", start)
        if ch == '<' and self._match('>'):
            return self._make_token(TokenType.NE, "<>", start)

        single_char_tokens = {
            '=': TokenType.EQ,
            '<': TokenType.LT,
            '>': TokenType.GT,
            '*': TokenType.STAR,
            ',': TokenType.COMMA,
            ';': TokenType.SEMICOLON,
        }

        if ch in single_char_tokens:
            return self._make_token(single_char_tokens[ch], ch, start)

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
