"""
MotionDSL: A Domain-Specific Language for 2-D Animation Scripts

Turns short scripts (scene, create, set, animate, render, save, ...) into a
deterministic, frame-by-frame sequence of positioned and colored shapes.
Frames are drawn on a matplotlib canvas by default and can be exported as
PNG sequences, MP4 (via ffmpeg) or GIF.

Version: 0.3.0
"""

import math
import os
import re
import shutil
import subprocess
import time
import warnings
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np
from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.figure import Figure
from matplotlib.patches import Polygon as PolygonPatch
from scipy.integrate import solve_ivp

__version__ = "0.3.0"

# ============================================================================
# DEFAULTS
# ============================================================================

DEFAULT_WIDTH = 1920
DEFAULT_HEIGHT = 1080
DEFAULT_FRAME_RATE = 30
DEFAULT_OUTPUT_DIR = "output"
DEFAULT_EXPORT_FPS = 30.0
DEFAULT_EXPORT_DURATION = 5.0
DEFAULT_CLEAN_DIRS = ("output", "scripts")
DEFAULT_STROKE_WIDTH = 2.0

CIRCLE_SEGMENTS = 64
TEXT_BOX_HALF_SIZE = 0.1
ARROW_HEAD_RATIO = 0.1

# Auto-scale: (both content dimensions below limit, damping factor)
AUTO_SCALE_DAMPING = [(10.0, 0.6), (20.0, 0.5), (math.inf, 0.4)]
MIN_SCALE = 5.0
FIXED_SCALE = 40.0
FIT_MARGIN = (4.0, 3.0)
TEXT_ONLY_MIN_RANGE = (8.0, 6.0)

ELASTIC_AMPLITUDE = 1.0
ELASTIC_PERIOD = 0.3
ELASTIC_PROPERTIES = ("scale", "opacity", "x", "y")

BOUNCE_GRAVITY = -9.8
BOUNCE_ELASTICITY = 0.8
BOUNCE_GROUND = -4.5
BOUNCE_REST_SPEED = 0.1
BOUNCE_MAX_CONTACTS = 200
BOUNCE_SAMPLES_PER_ARC = 48

FRAME_TEMPLATE = "frame_%04d.png"

# ============================================================================
# TOKEN SYSTEM
# ============================================================================

STATEMENT_KEYWORDS = ["scene", "create", "set", "animate", "render", "save",
                      "export", "video", "wait", "loop", "clean"]
SHAPE_KINDS = ["circle", "rectangle", "line", "arrow", "polygon", "text", "triangle"]
ANIMATION_KINDS = ["move", "scale", "rotate", "fadein", "fadeout", "color",
                   "path", "elastic", "bounce"]
PROPERTY_NAMES = ["color", "position", "opacity", "size", "width", "height",
                  "vertex1", "vertex2", "vertex3", "vertices"]

KEYWORDS = {word: word.upper()
            for word in STATEMENT_KEYWORDS + SHAPE_KINDS + ANIMATION_KINDS + PROPERTY_NAMES}

STATEMENT_TYPES = {word.upper() for word in STATEMENT_KEYWORDS}
SHAPE_TYPES = tuple(word.upper() for word in SHAPE_KINDS)
ANIMATION_TYPES = tuple(word.upper() for word in ANIMATION_KINDS)
PROPERTY_TYPES = tuple(word.upper() for word in PROPERTY_NAMES)
# Keywords that may also appear as plain values (e.g. "scale" in elastic params)
VALUE_KEYWORD_TYPES = set(KEYWORDS.values()) - STATEMENT_TYPES

TOKEN_TYPES = [
    ("NEWLINE", r"\n"),
    ("WHITESPACE", r"[ \t\r]+"),
    ("COMMENT", r"//[^\n]*"),
    # '#' followed by a hex digit is a color, any other '#' starts a comment
    ("COLOR", r"#[0-9A-Fa-f]+"),
    ("HASH_COMMENT", r"#[^\n]*"),
    ("NUMBER", r"\d+(?:\.\d*)?"),
    ("STRING", r'"[^"]*"?'),
    ("IDENT", r"[A-Za-z][A-Za-z0-9_]*"),

    ("ASSIGN", r"="),
    ("PLUS", r"\+"),
    ("MINUS", r"-"),
    ("MULTIPLY", r"\*"),
    ("DIVIDE", r"/"),
    ("COMMA", r","),
    ("LPAREN", r"\("),
    ("RPAREN", r"\)"),
    ("LBRACE", r"\{"),
    ("RBRACE", r"\}"),
    ("LBRACKET", r"\["),
    ("RBRACKET", r"\]"),
    ("DOT", r"\."),
    ("COLON", r":"),
    ("SEMICOLON", r";"),

    ("ILLEGAL", r"."),
]

SKIPPED_TOKENS = {"WHITESPACE", "COMMENT", "HASH_COMMENT"}

token_regex = "|".join(f"(?P<{name}>{pattern})" for name, pattern in TOKEN_TYPES)
token_pattern = re.compile(token_regex)


@dataclass(frozen=True)
class Token:
    """Token with position tracking for diagnostics"""
    type: str
    value: str
    position: int = 0
    line: int = 1
    column: int = 1

    def __repr__(self):
        return f"{self.type}:{self.value}@{self.line}:{self.column}"


class Lexer:
    """Streaming tokenizer; call next_token() until it returns EOF"""

    def __init__(self, source: str):
        self.source = source
        self.line = 1
        self.line_start = 0
        self._matches = token_pattern.finditer(source)

    def next_token(self) -> Token:
        for match in self._matches:
            kind = match.lastgroup
            value = match.group()
            position = match.start()
            line = self.line
            column = position - self.line_start + 1

            # Strings may span lines, so count every newline in the match
            newlines = value.count("\n")
            if newlines:
                self.line += newlines
                self.line_start = position + value.rfind("\n") + 1

            if kind in SKIPPED_TOKENS:
                continue
            if kind == "IDENT":
                kind = KEYWORDS.get(value, "IDENT")
            elif kind == "STRING":
                value = value[1:-1] if len(value) > 1 and value.endswith('"') else value[1:]

            return Token(kind, value, position, line, column)

        return Token("EOF", "", len(self.source), self.line,
                     len(self.source) - self.line_start + 1)


def tokenize(source: str) -> List[Token]:
    """
    Tokenize a whole script

    Args:
        source: script text

    Returns:
        List of tokens ending with a single EOF token
    """
    lexer = Lexer(source)
    tokens = []
    while True:
        token = lexer.next_token()
        tokens.append(token)
        if token.type == "EOF":
            return tokens


# ============================================================================
# AST
# ============================================================================

class ASTNode:
    """Base class for all AST nodes"""
    def __repr__(self):
        return f"{self.__class__.__name__}()"


class Expression(ASTNode):
    """Base class for all expressions"""
    label = "value"


class Statement(ASTNode):
    """Base class for all statements"""
    pass


@dataclass(frozen=True)
class NumberLit(Expression):
    value: float
    line: int = 0
    column: int = 0
    label = "number"

    def __repr__(self):
        return f"Num({self.value:g})"


@dataclass(frozen=True)
class StringLit(Expression):
    value: str
    line: int = 0
    column: int = 0
    label = "string"

    def __repr__(self):
        return f"Str({self.value!r})"


@dataclass(frozen=True)
class ColorLit(Expression):
    value: str
    line: int = 0
    column: int = 0
    label = "color"

    def __repr__(self):
        return f"Color({self.value})"


@dataclass(frozen=True)
class Identifier(Expression):
    name: str
    line: int = 0
    column: int = 0
    label = "name"

    def __repr__(self):
        return f"Id({self.name})"


@dataclass(frozen=True)
class CoordinateExpr(Expression):
    x: Expression
    y: Expression
    line: int = 0
    column: int = 0
    label = "coordinate"

    def __repr__(self):
        return f"({self.x!r}, {self.y!r})"


@dataclass(frozen=True)
class ArrayExpr(Expression):
    elements: Tuple[Expression, ...]
    line: int = 0
    column: int = 0
    label = "array"

    def __repr__(self):
        return f"[{', '.join(repr(e) for e in self.elements)}]"


@dataclass(frozen=True)
class SceneStmt(Statement):
    width: float
    height: float
    name: str
    line: int = 0
    column: int = 0

    def __repr__(self):
        return f"Scene({self.width:g}x{self.height:g}, {self.name!r})"


@dataclass(frozen=True)
class CreateStmt(Statement):
    kind: str
    name: str
    params: Tuple[Expression, ...]
    line: int = 0
    column: int = 0

    def __repr__(self):
        return f"Create({self.kind} {self.name}, params={list(self.params)})"


@dataclass(frozen=True)
class SetStmt(Statement):
    name: str
    prop: str
    value: Expression
    line: int = 0
    column: int = 0

    def __repr__(self):
        return f"Set({self.name}.{self.prop} = {self.value!r})"


@dataclass(frozen=True)
class AnimateStmt(Statement):
    kind: str
    name: str
    params: Tuple[Expression, ...]
    duration: float
    line: int = 0
    column: int = 0

    def __repr__(self):
        return f"Animate({self.kind} {self.name}, params={list(self.params)}, {self.duration:g}s)"


@dataclass(frozen=True)
class RenderStmt(Statement):
    line: int = 0
    column: int = 0

    def __repr__(self):
        return "Render()"


@dataclass(frozen=True)
class RenderFramesStmt(Statement):
    count: float
    line: int = 0
    column: int = 0

    def __repr__(self):
        return f"RenderFrames({self.count:g})"


@dataclass(frozen=True)
class SaveStmt(Statement):
    filename: str
    line: int = 0
    column: int = 0

    def __repr__(self):
        return f"Save({self.filename!r})"


@dataclass(frozen=True)
class ExportStmt(Statement):
    filename: str
    fps: Optional[float] = None
    duration: Optional[float] = None
    line: int = 0
    column: int = 0

    def __repr__(self):
        return f"Export({self.filename!r}, fps={self.fps}, duration={self.duration})"


@dataclass(frozen=True)
class VideoStmt(Statement):
    filename: str
    fps: float
    duration: float
    line: int = 0
    column: int = 0

    def __repr__(self):
        return f"Video({self.filename!r}, fps={self.fps:g}, duration={self.duration:g})"


@dataclass(frozen=True)
class WaitStmt(Statement):
    seconds: float
    line: int = 0
    column: int = 0

    def __repr__(self):
        return f"Wait({self.seconds:g}s)"


@dataclass(frozen=True)
class LoopStmt(Statement):
    count: float
    body: Tuple[Statement, ...]
    line: int = 0
    column: int = 0

    def __repr__(self):
        return f"Loop({self.count:g}, body={list(self.body)})"


@dataclass(frozen=True)
class CleanStmt(Statement):
    directories: Tuple[str, ...]
    line: int = 0
    column: int = 0

    def __repr__(self):
        return f"Clean({list(self.directories)})"


@dataclass(frozen=True)
class Program(ASTNode):
    statements: Tuple[Statement, ...]

    def __iter__(self):
        return iter(self.statements)

    def __len__(self):
        return len(self.statements)

    def __repr__(self):
        return f"Program({len(self.statements)} statements)"


@dataclass(frozen=True)
class Diagnostic:
    """A positioned parse problem"""
    line: int
    column: int
    message: str

    def __str__(self):
        return f"line {self.line}, column {self.column}: {self.message}"


class ScriptSyntaxError(SyntaxError):
    """Raised inside the parser for a malformed statement"""

    def __init__(self, message: str, line: int, column: int):
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column

    @property
    def diagnostic(self) -> Diagnostic:
        return Diagnostic(self.line, self.column, self.message)


def describe_token(token: Token) -> str:
    if token.type == "EOF":
        return "end of input"
    if token.type == "NEWLINE":
        return "end of line"
    if token.type == "ILLEGAL":
        return f"illegal character '{token.value}'"
    return f"{token.type} '{token.value}'"


# ============================================================================
# PARSER
# ============================================================================

class MotionParser:
    """Recursive-descent parser that records diagnostics and keeps going"""

    END_OF_STATEMENT = ("NEWLINE", "SEMICOLON", "EOF", "RBRACE")

    def __init__(self, tokens: List[Token]):
        tokens = list(tokens)
        if not tokens or tokens[-1].type != "EOF":
            last = tokens[-1] if tokens else Token("EOF", "")
            tokens.append(Token("EOF", "", last.position, last.line, last.column))
        self.tokens = tokens
        self.pos = 0
        self.errors: List[Diagnostic] = []

        self.handlers = {
            "SCENE": self.parse_scene,
            "CREATE": self.parse_create,
            "SET": self.parse_set,
            "ANIMATE": self.parse_animate,
            "RENDER": self.parse_render,
            "SAVE": self.parse_save,
            "EXPORT": self.parse_export,
            "VIDEO": self.parse_video,
            "WAIT": self.parse_wait,
            "LOOP": self.parse_loop,
            "CLEAN": self.parse_clean,
        }

    @property
    def current(self) -> Token:
        return self.tokens[min(self.pos, len(self.tokens) - 1)]

    def peek(self, offset: int = 1) -> Token:
        return self.tokens[min(self.pos + offset, len(self.tokens) - 1)]

    def advance(self) -> Token:
        token = self.current
        if token.type != "EOF":
            self.pos += 1
        return token

    def at(self, *types: str) -> bool:
        return self.current.type in types

    def match(self, *expected_types: str) -> Optional[Token]:
        if self.current.type in expected_types:
            return self.advance()
        return None

    def expect(self, expected_type: str, description: Optional[str] = None) -> Token:
        token = self.match(expected_type)
        if token is None:
            raise self.error(f"expected {description or expected_type}", self.current)
        return token

    def expect_one(self, expected_types: Sequence[str], description: str) -> Token:
        token = self.match(*expected_types)
        if token is None:
            raise self.error(f"expected {description}", self.current)
        return token

    def error(self, message: str, token: Token) -> ScriptSyntaxError:
        return ScriptSyntaxError(f"{message}, got {describe_token(token)}",
                                 token.line, token.column)

    def skip_newlines(self):
        while self.at("NEWLINE"):
            self.advance()

    def synchronize(self, in_block: bool = False):
        """Skip to the start of the next line (or the closing brace of a block)"""
        while not self.at("EOF"):
            if self.at("NEWLINE"):
                self.advance()
                return
            if in_block and self.at("RBRACE"):
                return
            self.advance()

    def parse_program(self) -> Program:
        """Parse the whole script, collecting one diagnostic per bad statement"""
        statements = self.parse_block(in_block=False)
        if self.errors:
            warnings.warn(f"Parser encountered {len(self.errors)} errors")
        return Program(tuple(statements))

    def parse_block(self, in_block: bool) -> List[Statement]:
        statements = []
        while not self.at("EOF"):
            if in_block and self.at("RBRACE"):
                break
            if self.match("NEWLINE", "SEMICOLON"):
                continue
            try:
                statements.append(self.parse_statement())
            except ScriptSyntaxError as e:
                self.errors.append(e.diagnostic)
                self.synchronize(in_block)
        return statements

    def parse_statement(self) -> Statement:
        handler = self.handlers.get(self.current.type)
        if handler is None:
            raise self.error("expected a statement keyword", self.current)
        statement = handler()
        self.end_statement()
        return statement

    def end_statement(self):
        if self.match("NEWLINE", "SEMICOLON"):
            return
        if not self.at("EOF", "RBRACE"):
            raise self.error("expected end of statement", self.current)

    def at_number(self) -> bool:
        if self.at("NUMBER"):
            return True
        return self.at("MINUS", "PLUS") and self.peek().type == "NUMBER"

    def parse_number(self, description: str = "a number") -> float:
        sign = 1.0
        if self.at("MINUS", "PLUS") and self.peek().type == "NUMBER":
            sign = -1.0 if self.advance().type == "MINUS" else 1.0
        token = self.expect("NUMBER", description)
        return sign * float(token.value)

    def parse_parameters(self) -> List[Expression]:
        params = []
        while not self.at(*self.END_OF_STATEMENT):
            params.append(self.parse_expression())
        return params

    def parse_scene(self) -> SceneStmt:
        """Parse scene <width> <height> "name" """
        token = self.advance()
        width = self.parse_number("scene width")
        height = self.parse_number("scene height")
        name = self.expect("STRING", "scene name string")
        return SceneStmt(width, height, name.value, token.line, token.column)

    def parse_create(self) -> CreateStmt:
        """Parse create <kind> <name> <params...>"""
        token = self.advance()
        kind = self.expect_one(SHAPE_TYPES, f"a shape type ({', '.join(SHAPE_KINDS)})")
        name = self.expect("IDENT", "an object name")
        params = self.parse_parameters()
        return CreateStmt(kind.value, name.value, tuple(params), token.line, token.column)

    def parse_set(self) -> SetStmt:
        """Parse set <name>.<property> = <value>"""
        token = self.advance()
        name = self.expect("IDENT", "an object name")
        self.expect("DOT", "'.' after the object name")
        prop = self.expect_one(PROPERTY_TYPES, f"a property ({', '.join(PROPERTY_NAMES)})")
        self.expect("ASSIGN", "'='")
        value = self.parse_expression()
        return SetStmt(name.value, prop.value, value, token.line, token.column)

    def parse_animate(self) -> AnimateStmt:
        """Parse animate <kind> <name> <params...> <duration>"""
        token = self.advance()
        kind = self.expect_one(ANIMATION_TYPES, f"an animation type ({', '.join(ANIMATION_KINDS)})")
        name = self.expect("IDENT", "an object name")
        params = self.parse_parameters()

        # An interpolation name may follow the duration
        trailing = []
        if (len(params) >= 2 and isinstance(params[-1], Identifier)
                and Interpolation.is_name(params[-1].name)):
            trailing.append(params.pop())
        if not params or not isinstance(params[-1], NumberLit):
            raise self.error("expected a duration in seconds at the end of animate", self.current)
        duration = params.pop()
        return AnimateStmt(kind.value, name.value, tuple(params + trailing), duration.value,
                           token.line, token.column)

    def parse_render(self) -> Statement:
        token = self.advance()
        if self.at_number():
            count = self.parse_number("a frame count")
            return RenderFramesStmt(count, token.line, token.column)
        return RenderStmt(token.line, token.column)

    def parse_save(self) -> SaveStmt:
        token = self.advance()
        filename = self.expect("STRING", "a file name string")
        return SaveStmt(filename.value, token.line, token.column)

    def parse_export(self) -> ExportStmt:
        """Parse export "file" [fps [duration]]"""
        token = self.advance()
        filename = self.expect("STRING", "a file name string")
        fps = self.parse_number("frames per second") if self.at_number() else None
        duration = self.parse_number("a duration") if self.at_number() else None
        return ExportStmt(filename.value, fps, duration, token.line, token.column)

    def parse_video(self) -> VideoStmt:
        token = self.advance()
        filename = self.expect("STRING", "a file name string")
        fps = self.parse_number("frames per second")
        duration = self.parse_number("a duration")
        return VideoStmt(filename.value, fps, duration, token.line, token.column)

    def parse_wait(self) -> WaitStmt:
        token = self.advance()
        seconds = self.parse_number("a number of seconds")
        return WaitStmt(seconds, token.line, token.column)

    def parse_loop(self) -> LoopStmt:
        """Parse loop <count> { <statements> }"""
        token = self.advance()
        count = self.parse_number("a loop count")
        self.skip_newlines()
        self.expect("LBRACE", "'{' to open the loop body")
        body = self.parse_block(in_block=True)
        self.expect("RBRACE", "'}' to close the loop body")
        return LoopStmt(count, tuple(body), token.line, token.column)

    def parse_clean(self) -> CleanStmt:
        """Parse clean ["dir", ...] with optional brackets and commas"""
        token = self.advance()
        bracketed = self.match("LBRACKET") is not None
        directories = []
        while self.at("STRING"):
            directories.append(self.advance().value)
            self.match("COMMA")
        if bracketed:
            self.expect("RBRACKET", "']'")
        return CleanStmt(tuple(directories), token.line, token.column)

    def parse_expression(self) -> Expression:
        token = self.current

        if self.at_number():
            return NumberLit(self.parse_number(), token.line, token.column)

        if token.type == "STRING":
            self.advance()
            return StringLit(token.value, token.line, token.column)

        if token.type == "COLOR":
            self.advance()
            return ColorLit(token.value, token.line, token.column)

        if token.type == "IDENT" or token.type in VALUE_KEYWORD_TYPES:
            self.advance()
            return Identifier(token.value, token.line, token.column)

        if token.type == "LPAREN":
            return self.parse_coordinate()

        if token.type == "LBRACKET":
            return self.parse_array()

        raise self.error("expected a value", token)

    def parse_coordinate(self) -> CoordinateExpr:
        token = self.advance()
        x = self.parse_expression()
        self.expect("COMMA", "',' between coordinates")
        y = self.parse_expression()
        self.expect("RPAREN", "')' to close the coordinate")
        return CoordinateExpr(x, y, token.line, token.column)

    def parse_array(self) -> ArrayExpr:
        token = self.advance()
        elements = []
        self.skip_newlines()
        while not self.match("RBRACKET"):
            elements.append(self.parse_expression())
            self.skip_newlines()
            if not self.match("COMMA"):
                self.expect("RBRACKET", "']' to close the array")
                break
            self.skip_newlines()
        return ArrayExpr(tuple(elements), token.line, token.column)


def parse_source(source: str) -> Tuple[Program, List[Diagnostic]]:
    """Tokenize and parse in one step"""
    parser = MotionParser(tokenize(source))
    program = parser.parse_program()
    return program, parser.errors


# ============================================================================
# COLORS AND NAMED SIZES
# ============================================================================

HEX_COLOR = re.compile(r"#([0-9A-Fa-f]{6})")


@dataclass(frozen=True)
class Color:
    """RGBA color with 8-bit channels"""
    r: int
    g: int
    b: int
    a: int = 255

    @classmethod
    def from_hex(cls, text: str) -> "Color":
        match = HEX_COLOR.fullmatch(text.strip())
        if not match:
            raise ValueError(f"invalid hex color '{text}' (expected #RRGGBB)")
        digits = match.group(1)
        return cls(int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16))

    @property
    def rgb(self) -> Tuple[int, int, int]:
        return (self.r, self.g, self.b)

    def to_hex(self) -> str:
        return f"#{self.r:02X}{self.g:02X}{self.b:02X}"

    def to_mpl(self, alpha: Optional[float] = None) -> Tuple[float, float, float, float]:
        opacity = self.a / 255.0
        if alpha is not None:
            opacity *= min(max(alpha, 0.0), 1.0)
        return (self.r / 255.0, self.g / 255.0, self.b / 255.0, opacity)

    def lerp(self, other: "Color", t: float) -> "Color":
        if t <= 0.0:
            return self
        if t >= 1.0:
            return other

        def channel(a, b):
            return int(min(max(round(a + (b - a) * t), 0), 255))

        return Color(channel(self.r, other.r), channel(self.g, other.g),
                     channel(self.b, other.b), channel(self.a, other.a))

    def __repr__(self):
        return f"Color({self.r}, {self.g}, {self.b}, {self.a})"


NAMED_COLORS = {name: Color.from_hex(code) for name, code in {
    # Basic
    "black": "#000000",
    "white": "#FFFFFF",
    "red": "#FF0000",
    "green": "#00FF00",
    "blue": "#0000FF",
    "yellow": "#FFFF00",
    "cyan": "#00FFFF",
    "magenta": "#FF00FF",

    # Theme
    "primary": "#2196F3",
    "secondary": "#FF9800",
    "accent": "#FF5722",
    "background": "#FAFAFA",
    "surface": "#FFFFFF",
    "error": "#F44336",
    "success": "#4CAF50",
    "warning": "#FFC107",
    "info": "#2196F3",
    "muted": "#9E9E9E",

    # Math illustration palette
    "mathred": "#E74C3C",
    "mathblue": "#3498DB",
    "mathgreen": "#27AE60",
    "mathorange": "#F39C12",
    "mathpurple": "#8E44AD",

    # Legacy palette
    "deepblue": "#051B4A",
    "midblue": "#274274",
    "purpleblue": "#576DA2",
    "cyanblue": "#2B576E",
    "darkcolor": "#041229",
    "lightpurple": "#9BA2C2",
}.items()}

BLACK = NAMED_COLORS["black"]
WHITE = NAMED_COLORS["white"]
DEFAULT_SHAPE_COLOR = BLACK
DEFAULT_BACKGROUND = WHITE

FONT_SIZES = {
    "tiny": 8.0,
    "small": 12.0,
    "normal": 16.0,
    "large": 20.0,
    "huge": 24.0,
    "title": 28.0,
}


def resolve_color(value: Any) -> Color:
    """Resolve a hex literal or a named color; unknown names raise ValueError"""
    if isinstance(value, Color):
        return value
    if not isinstance(value, str):
        raise ValueError(f"expected a color, got {value!r}")
    text = value.strip()
    if text.startswith("#"):
        return Color.from_hex(text)
    key = text.lower().replace("-", "").replace("_", "")
    if key not in NAMED_COLORS:
        raise ValueError(f"unknown color name '{value}'")
    return NAMED_COLORS[key]


def resolve_font_size(value: Any) -> float:
    """Resolve a positive number or one of the named text sizes"""
    if isinstance(value, str):
        key = value.strip().lower()
        if key not in FONT_SIZES:
            raise ValueError(f"unknown text size '{value}' (choose from {', '.join(FONT_SIZES)})")
        return FONT_SIZES[key]
    size = float(value)
    if size <= 0:
        raise ValueError(f"text size must be positive, got {size:g}")
    return size


# ============================================================================
# GEOMETRY
# ============================================================================

Point = Tuple[float, float]


def as_point(value: Any) -> np.ndarray:
    point = np.asarray(value, dtype=float)
    if point.shape != (2,):
        raise ValueError(f"expected an (x, y) point, got {value!r}")
    return point


class Shape:
    """Base drawable: an ordered (n, 2) point array plus style attributes"""

    kind = "shape"
    closed = False
    default_fill_opacity = 0.0

    def __init__(self, points, color: Optional[Color] = None,
                 stroke_width: float = DEFAULT_STROKE_WIDTH,
                 fill_opacity: Optional[float] = None):
        points = np.array(points, dtype=float).reshape(-1, 2)
        if len(points) == 0:
            raise ValueError(f"{self.kind} needs at least one point")
        self.points = points
        self.color = color if color is not None else DEFAULT_SHAPE_COLOR
        self.stroke_width = stroke_width
        self.fill_opacity = self.default_fill_opacity if fill_opacity is None else fill_opacity
        self.name: Optional[str] = None

    @property
    def center(self) -> np.ndarray:
        return self.points.mean(axis=0)

    def shift(self, offset) -> "Shape":
        self.points = self.points + as_point(offset)
        return self

    def move_to(self, target) -> "Shape":
        return self.shift(as_point(target) - self.center)

    def scale(self, factor: float, about=None) -> "Shape":
        pivot = self.center if about is None else as_point(about)
        self.points = pivot + (self.points - pivot) * factor
        return self

    def rotate(self, angle: float, about=None) -> "Shape":
        """Rotate counter-clockwise by angle (radians)"""
        pivot = self.center if about is None else as_point(about)
        cos_a, sin_a = math.cos(angle), math.sin(angle)
        rotation = np.array([[cos_a, -sin_a], [sin_a, cos_a]])
        self.points = pivot + (self.points - pivot) @ rotation.T
        return self

    def snapshot(self) -> dict:
        return {"points": self.points.copy()}

    def restore(self, state: dict) -> "Shape":
        self.points = state["points"].copy()
        return self

    def __repr__(self):
        x, y = self.center
        return f"{self.__class__.__name__}(name={self.name!r}, center=({x:.2f}, {y:.2f}))"


def circle_points(radius: float, center, segments: int = CIRCLE_SEGMENTS) -> np.ndarray:
    angles = np.linspace(0.0, 2.0 * math.pi, segments, endpoint=False)
    cx, cy = as_point(center)
    return np.column_stack([cx + radius * np.cos(angles), cy + radius * np.sin(angles)])


def rectangle_points(width: float, height: float, center) -> np.ndarray:
    cx, cy = as_point(center)
    hw, hh = width / 2.0, height / 2.0
    return np.array([[cx - hw, cy - hh], [cx + hw, cy - hh],
                     [cx + hw, cy + hh], [cx - hw, cy + hh]])


class Circle(Shape):
    kind = "circle"
    closed = True

    def __init__(self, radius: float, center=(0.0, 0.0), segments: int = CIRCLE_SEGMENTS, **style):
        if radius <= 0:
            raise ValueError(f"circle radius must be positive, got {radius:g}")
        super().__init__(circle_points(radius, center, segments), **style)
        self.segments = segments

    @property
    def radius(self) -> float:
        return float(np.linalg.norm(self.points[0] - self.center))

    def set_radius(self, radius: float):
        if radius <= 0:
            raise ValueError(f"circle radius must be positive, got {radius:g}")
        self.points = circle_points(radius, self.center, self.segments)


class Rectangle(Shape):
    kind = "rectangle"
    closed = True

    def __init__(self, width: float, height: float, center=(0.0, 0.0), **style):
        if width <= 0 or height <= 0:
            raise ValueError(f"rectangle size must be positive, got {width:g} x {height:g}")
        super().__init__(rectangle_points(width, height, center), **style)

    @property
    def width(self) -> float:
        return float(np.linalg.norm(self.points[1] - self.points[0]))

    @property
    def height(self) -> float:
        return float(np.linalg.norm(self.points[2] - self.points[1]))

    def set_size(self, width: Optional[float] = None, height: Optional[float] = None):
        width = self.width if width is None else width
        height = self.height if height is None else height
        if width <= 0 or height <= 0:
            raise ValueError(f"rectangle size must be positive, got {width:g} x {height:g}")
        self.points = rectangle_points(width, height, self.center)


class Line(Shape):
    kind = "line"
    default_fill_opacity = 1.0  # open shapes use it as stroke opacity

    def __init__(self, start, end, **style):
        super().__init__([as_point(start), as_point(end)], **style)

    @property
    def start(self) -> np.ndarray:
        return self.points[0]

    @property
    def end(self) -> np.ndarray:
        return self.points[-1]

    @property
    def length(self) -> float:
        return float(np.linalg.norm(self.end - self.start))


class Arrow(Line):
    kind = "arrow"

    def __init__(self, start, end, head_ratio: float = ARROW_HEAD_RATIO, **style):
        super().__init__(start, end, **style)
        self.head_ratio = head_ratio

    def head_points(self) -> Optional[np.ndarray]:
        """Triangle at the tip, sized relative to the arrow length"""
        length = self.length
        if length == 0:
            return None
        direction = (self.end - self.start) / length
        normal = np.array([-direction[1], direction[0]])
        size = self.head_ratio * length
        base = self.end - direction * size
        return np.array([self.end, base + normal * size / 2.0, base - normal * size / 2.0])


class Polygon(Shape):
    kind = "polygon"
    closed = True

    def __init__(self, vertices, **style):
        vertices = np.array(vertices, dtype=float).reshape(-1, 2)
        if len(vertices) < 3:
            raise ValueError(f"polygon needs at least 3 vertices, got {len(vertices)}")
        super().__init__(vertices, **style)

    def set_vertices(self, vertices):
        vertices = np.array(vertices, dtype=float).reshape(-1, 2)
        if len(vertices) < 3:
            raise ValueError(f"polygon needs at least 3 vertices, got {len(vertices)}")
        self.points = vertices


class Text(Shape):
    """Text anchored at its center; the points are a small box around the anchor"""

    kind = "text"
    default_fill_opacity = 1.0

    def __init__(self, content: str, font_size: float = FONT_SIZES["normal"],
                 position=(0.0, 0.0), **style):
        if font_size <= 0:
            raise ValueError(f"text size must be positive, got {font_size:g}")
        side = TEXT_BOX_HALF_SIZE * 2.0
        super().__init__(rectangle_points(side, side, position), **style)
        self.content = content
        self.font_size = float(font_size)
        self.angle = 0.0

    def scale(self, factor: float, about=None) -> "Text":
        super().scale(factor, about)
        self.font_size *= abs(factor)
        return self

    def rotate(self, angle: float, about=None) -> "Text":
        super().rotate(angle, about)
        self.angle += angle
        return self

    def snapshot(self) -> dict:
        state = super().snapshot()
        state.update(font_size=self.font_size, angle=self.angle)
        return state

    def restore(self, state: dict) -> "Text":
        super().restore(state)
        self.font_size = state["font_size"]
        self.angle = state["angle"]
        return self


class Triangle(Shape):
    kind = "triangle"
    closed = True

    def __init__(self, vertex1, vertex2, vertex3, **style):
        super().__init__([as_point(vertex1), as_point(vertex2), as_point(vertex3)], **style)

    @classmethod
    def centered(cls, size: float, center=(0.0, 0.0), **style) -> "Triangle":
        """Isosceles triangle of base and height `size` around center"""
        if size <= 0:
            raise ValueError(f"triangle size must be positive, got {size:g}")
        cx, cy = as_point(center)
        half = size / 2.0
        return cls((cx, cy + half), (cx - half, cy - half), (cx + half, cy - half), **style)

    @classmethod
    def equilateral(cls, side: float, center=(0.0, 0.0), **style) -> "Triangle":
        if side <= 0:
            raise ValueError(f"triangle side must be positive, got {side:g}")
        cx, cy = as_point(center)
        height = side * math.sqrt(3.0) / 2.0
        return cls((cx, cy + height / 2.0), (cx - side / 2.0, cy - height / 2.0),
                   (cx + side / 2.0, cy - height / 2.0), **style)

    @classmethod
    def right(cls, width: float, height: float, center=(0.0, 0.0), **style) -> "Triangle":
        if width <= 0 or height <= 0:
            raise ValueError(f"triangle size must be positive, got {width:g} x {height:g}")
        cx, cy = as_point(center)
        return cls((cx - width / 2.0, cy - height / 2.0), (cx + width / 2.0, cy - height / 2.0),
                   (cx - width / 2.0, cy + height / 2.0), **style)

    @property
    def vertices(self) -> List[np.ndarray]:
        return [point.copy() for point in self.points]

    def set_vertex(self, index: int, point):
        if index not in (0, 1, 2):
            raise ValueError(f"triangle vertex index must be 0, 1 or 2, got {index}")
        points = self.points.copy()
        points[index] = as_point(point)
        self.points = points

    def set_vertices(self, vertices):
        vertices = np.array(vertices, dtype=float).reshape(-1, 2)
        if len(vertices) != 3:
            raise ValueError(f"a triangle needs exactly 3 vertices, got {len(vertices)}")
        self.points = vertices


TRIANGLE_TYPES = {
    "equilateral": (Triangle.equilateral, 1),
    "isosceles": (Triangle.centered, 1),
    "right": (Triangle.right, 2),
}


# ============================================================================
# COORDINATE SYSTEM
# ============================================================================

class CoordinateSystem:
    """
    Logical <-> screen mapping

    Logical Y grows upward, screen Y grows downward. The logical origin sits
    at (center_x, center_y) on screen and one logical unit spans `scale` pixels.
    """

    def __init__(self, width: float, height: float, scale: float = 1.0):
        self.width = float(width)
        self.height = float(height)
        self.center_x = self.width / 2.0
        self.center_y = self.height / 2.0
        self.scale = 1.0
        self.set_scale(scale)

    def set_scale(self, scale: float):
        if not scale > 0:
            raise ValueError(f"scale must be positive, got {scale}")
        self.scale = float(scale)

    def to_screen(self, logical) -> np.ndarray:
        logical = np.asarray(logical, dtype=float)
        x = self.center_x + logical[..., 0] * self.scale
        y = self.center_y - logical[..., 1] * self.scale
        return np.stack([x, y], axis=-1)

    def to_logical(self, screen) -> np.ndarray:
        screen = np.asarray(screen, dtype=float)
        x = (screen[..., 0] - self.center_x) / self.scale
        y = (self.center_y - screen[..., 1]) / self.scale
        return np.stack([x, y], axis=-1)

    def fit(self, content_width: float, content_height: float) -> float:
        """Pick a damped scale so content of the given logical size fits the canvas"""
        if content_width <= 0 or content_height <= 0:
            raise ValueError(f"content size must be positive, got {content_width:g} x {content_height:g}")
        base = min(self.width / content_width, self.height / content_height)
        for limit, damping in AUTO_SCALE_DAMPING:
            if content_width < limit and content_height < limit:
                break
        self.center_x = self.width / 2.0
        self.center_y = self.height / 2.0
        self.set_scale(max(base * damping, MIN_SCALE))
        return self.scale

    def fit_shapes(self, shapes: Sequence[Shape]) -> float:
        """Fit to the bounding box of the shapes (text counts by its anchor only)"""
        chunks = []
        has_geometry = False
        for shape in shapes:
            if isinstance(shape, Text):
                chunks.append(shape.center.reshape(1, 2))
            else:
                chunks.append(shape.points)
                has_geometry = True

        if not chunks:
            self.center_x = self.width / 2.0
            self.center_y = self.height / 2.0
            self.set_scale(FIXED_SCALE)
            return self.scale

        points = np.vstack(chunks)
        content_width, content_height = points.max(axis=0) - points.min(axis=0)
        if not has_geometry:
            content_width = max(content_width, TEXT_ONLY_MIN_RANGE[0])
            content_height = max(content_height, TEXT_ONLY_MIN_RANGE[1])
        return self.fit(content_width + FIT_MARGIN[0], content_height + FIT_MARGIN[1])

    def set_range(self, x_min: float, x_max: float, y_min: float, y_max: float) -> float:
        """Show at least the given logical window, centered on the canvas"""
        if x_max <= x_min or y_max <= y_min:
            raise ValueError(f"invalid logical range x=[{x_min}, {x_max}] y=[{y_min}, {y_max}]")
        self.set_scale(min(self.width / (x_max - x_min), self.height / (y_max - y_min)))
        self.center_x = self.width / 2.0 - (x_min + x_max) / 2.0 * self.scale
        self.center_y = self.height / 2.0 + (y_min + y_max) / 2.0 * self.scale
        return self.scale

    def bounds(self) -> Tuple[float, float, float, float]:
        """Visible logical window as (x_min, x_max, y_min, y_max)"""
        return (-self.center_x / self.scale,
                (self.width - self.center_x) / self.scale,
                (self.center_y - self.height) / self.scale,
                self.center_y / self.scale)

    def __repr__(self):
        return f"CoordinateSystem({self.width:g}x{self.height:g}, scale={self.scale:g})"


# ============================================================================
# INTERPOLATION AND EASING
# ============================================================================

class Interpolation(Enum):
    LINEAR = "linear"
    SMOOTH = "smooth"
    EASE_IN = "easein"
    EASE_OUT = "easeout"
    EASE_IN_OUT = "easeinout"
    ELASTIC = "elastic"
    BOUNCE = "bounce"

    @classmethod
    def from_name(cls, name: str) -> "Interpolation":
        key = name.strip().lower().replace("_", "").replace("-", "")
        for member in cls:
            if member.value == key:
                return member
        raise ValueError(f"unknown interpolation '{name}' (choose from {', '.join(m.value for m in cls)})")

    @classmethod
    def is_name(cls, name: str) -> bool:
        key = name.strip().lower().replace("_", "").replace("-", "")
        return any(member.value == key for member in cls)


def linear(t: float) -> float:
    return t


def smooth_step(t: float) -> float:
    return t * t * (3.0 - 2.0 * t)


def ease_in(t: float) -> float:
    return t * t


def ease_out(t: float) -> float:
    return 1.0 - (1.0 - t) * (1.0 - t)


def ease_in_out(t: float) -> float:
    if t < 0.5:
        return 2.0 * t * t
    return -1.0 + (4.0 - 2.0 * t) * t


def elastic_ease_out(t: float, amplitude: float = ELASTIC_AMPLITUDE,
                     period: float = ELASTIC_PERIOD) -> float:
    """Damped sine: overshoots past 1 and settles"""
    if t <= 0.0:
        return 0.0
    if t >= 1.0:
        return 1.0
    return amplitude * 2.0 ** (-10.0 * t) * math.sin((t - period / 4.0) * 2.0 * math.pi / period) + 1.0


def bounce_ease_out(t: float) -> float:
    if t < 1.0 / 2.75:
        return 7.5625 * t * t
    if t < 2.0 / 2.75:
        t -= 1.5 / 2.75
        return 7.5625 * t * t + 0.75
    if t < 2.5 / 2.75:
        t -= 2.25 / 2.75
        return 7.5625 * t * t + 0.9375
    t -= 2.625 / 2.75
    return 7.5625 * t * t + 0.984375


EASING_CURVES: Dict[Interpolation, Callable[[float], float]] = {
    Interpolation.LINEAR: linear,
    Interpolation.SMOOTH: smooth_step,
    Interpolation.EASE_IN: ease_in,
    Interpolation.EASE_OUT: ease_out,
    Interpolation.EASE_IN_OUT: ease_in_out,
    Interpolation.ELASTIC: elastic_ease_out,
    Interpolation.BOUNCE: bounce_ease_out,
}


def ease(kind: Interpolation, t: float) -> float:
    """
    Apply an easing curve; 0 and 1 map exactly onto themselves

    Values outside [0, 1] (an elastic overshoot) pass through unchanged.
    """
    if not 0.0 < t < 1.0:
        return t
    return EASING_CURVES[kind](t)


def interpolate(kind: Interpolation, start, end, t: float):
    """Blend start -> end (floats or numpy arrays) with the given strategy"""
    u = ease(kind, t)
    if u == 0.0:
        return np.copy(start) if isinstance(start, np.ndarray) else start
    if u == 1.0:
        return np.copy(end) if isinstance(end, np.ndarray) else end
    return start + (end - start) * u


# ============================================================================
# ANIMATION ENGINE
# ============================================================================

class Animation:
    """
    Base animation: a pure mapping from progress in [0, 1] onto its target

    update(p) depends only on p and state captured at construction, so calling
    it twice with the same progress leaves the target unchanged.
    """

    def __init__(self, target: Optional[Shape], duration: float,
                 interpolation: Interpolation = Interpolation.SMOOTH,
                 easing: Callable[[float], float] = smooth_step):
        if duration < 0:
            raise ValueError(f"duration must not be negative, got {duration:g}")
        self.target = target
        self._duration = float(duration)
        self.interpolation = interpolation
        self.easing = easing
        self.progress = 0.0
        self.finished = False

    @property
    def duration(self) -> float:
        return self._duration

    def is_finished(self) -> bool:
        return self.finished

    def reset(self):
        self.progress = 0.0
        self.finished = False

    def update(self, progress: float):
        progress = min(max(float(progress), 0.0), 1.0)
        self.progress = progress
        if progress >= 1.0:
            self.finished = True
        self.apply(progress)

    def apply(self, progress: float):
        raise NotImplementedError

    def value_at(self, start, end, progress: float):
        return interpolate(self.interpolation, start, end, self.easing(progress))

    def __repr__(self):
        name = self.target.name if self.target is not None else None
        return f"{self.__class__.__name__}(target={name!r}, duration={self._duration:g})"


class MoveAnimation(Animation):
    def __init__(self, target: Shape, destination, duration: float, **options):
        super().__init__(target, duration, **options)
        self.start = target.center.copy()
        self.end = as_point(destination)

    def apply(self, progress: float):
        self.target.move_to(self.value_at(self.start, self.end, progress))


class SnapshotAnimation(Animation):
    """Restores the construction-time shape before each update so frames never compound"""

    def __init__(self, target: Shape, duration: float, **options):
        super().__init__(target, duration, **options)
        self.initial = target.snapshot()

    def restore_initial(self):
        # Keep whatever translation other animations applied meanwhile
        center = self.target.center
        self.target.restore(self.initial)
        self.target.move_to(center)


class ScaleAnimation(SnapshotAnimation):
    def __init__(self, target: Shape, factor: float, duration: float, **options):
        super().__init__(target, duration, **options)
        self.factor = float(factor)

    def apply(self, progress: float):
        self.restore_initial()
        self.target.scale(self.value_at(1.0, self.factor, progress))


class RotateAnimation(SnapshotAnimation):
    def __init__(self, target: Shape, angle: float, duration: float, **options):
        super().__init__(target, duration, **options)
        self.angle = float(angle)

    def apply(self, progress: float):
        self.restore_initial()
        self.target.rotate(self.value_at(0.0, self.angle, progress))


class FadeInAnimation(Animation):
    def apply(self, progress: float):
        self.target.fill_opacity = self.value_at(0.0, 1.0, progress)


class FadeOutAnimation(Animation):
    def __init__(self, target: Shape, duration: float, **options):
        super().__init__(target, duration, **options)
        self.start_opacity = target.fill_opacity

    def apply(self, progress: float):
        self.target.fill_opacity = self.value_at(self.start_opacity, 0.0, progress)


class ColorAnimation(Animation):
    def __init__(self, target: Shape, color: Color, duration: float, **options):
        super().__init__(target, duration, **options)
        self.start_color = target.color
        self.end_color = color

    def apply(self, progress: float):
        self.target.color = self.start_color.lerp(self.end_color, self.value_at(0.0, 1.0, progress))


class PathAnimation(Animation):
    """Walks the target's center along a polyline at constant arc-length speed"""

    def __init__(self, target: Shape, points, duration: float, **options):
        super().__init__(target, duration, **options)
        points = np.array(points, dtype=float).reshape(-1, 2)
        if len(points) == 0:
            raise ValueError("path needs at least one point")
        start = target.center
        if not np.allclose(points[0], start):
            points = np.vstack([start, points])
        self.points = points
        self.lengths = np.hypot(*np.diff(points, axis=0).T) if len(points) > 1 else np.zeros(0)
        self.cumulative = np.concatenate([[0.0], np.cumsum(self.lengths)])
        self.total_length = float(self.cumulative[-1])

    def point_at(self, fraction: float) -> np.ndarray:
        if self.total_length == 0.0:
            return self.points[0]
        if fraction >= 1.0:
            return self.points[-1]
        distance = max(fraction, 0.0) * self.total_length
        index = int(np.searchsorted(self.cumulative, distance, side="right")) - 1
        index = min(max(index, 0), len(self.lengths) - 1)
        segment = self.lengths[index]
        local = 0.0 if segment == 0 else (distance - self.cumulative[index]) / segment
        return self.points[index] + (self.points[index + 1] - self.points[index]) * local

    def apply(self, progress: float):
        self.target.move_to(self.point_at(self.value_at(0.0, 1.0, progress)))


class ElasticAnimation(SnapshotAnimation):
    """Springs one property (scale, opacity, x or y) toward a value with a damped-sine overshoot"""

    def __init__(self, target: Shape, prop: str, value: float, duration: float,
                 amplitude: float = ELASTIC_AMPLITUDE, period: float = ELASTIC_PERIOD,
                 interpolation: Interpolation = Interpolation.SMOOTH):
        if prop not in ELASTIC_PROPERTIES:
            raise ValueError(f"elastic property must be one of {', '.join(ELASTIC_PROPERTIES)}, got '{prop}'")
        if period <= 0:
            raise ValueError(f"elastic period must be positive, got {period:g}")
        super().__init__(target, duration, interpolation=interpolation,
                         easing=lambda t: elastic_ease_out(t, amplitude, period))
        self.prop = prop
        self.end_value = float(value)
        self.amplitude = amplitude
        self.period = period
        center = target.center
        self.start_value = {
            "scale": 1.0,
            "opacity": target.fill_opacity,
            "x": float(center[0]),
            "y": float(center[1]),
        }[prop]

    def apply(self, progress: float):
        value = self.value_at(self.start_value, self.end_value, progress)
        if self.prop == "scale":
            self.restore_initial()
            self.target.scale(value)
        elif self.prop == "opacity":
            self.target.fill_opacity = min(max(value, 0.0), 1.0)
        elif self.prop == "x":
            self.target.move_to((value, self.target.center[1]))
        else:
            self.target.move_to((self.target.center[0], value))


class BounceAnimation(Animation):
    """
    Drops the target under gravity and bounces it off a horizontal ground line

    The trajectory is integrated once with solve_ivp (ground contact is a
    terminal event, the rebound keeps `elasticity` of the impact speed) and
    update() samples it at progress * duration.
    """

    def __init__(self, target: Shape, duration: float, ground: float = BOUNCE_GROUND,
                 elasticity: float = BOUNCE_ELASTICITY, gravity: float = BOUNCE_GRAVITY,
                 rest_speed: float = BOUNCE_REST_SPEED, **options):
        super().__init__(target, duration, **options)
        if not 0.0 <= elasticity <= 1.0:
            raise ValueError(f"elasticity must be between 0 and 1, got {elasticity:g}")
        if gravity >= 0:
            raise ValueError(f"gravity must point down (negative), got {gravity:g}")
        self.ground = float(ground)
        self.elasticity = float(elasticity)
        self.gravity = float(gravity)
        self.rest_speed = float(rest_speed)
        self.start = target.center.copy()
        self.times, self.heights = self.simulate()

    def simulate(self) -> Tuple[np.ndarray, np.ndarray]:
        y0 = float(self.start[1])
        if self._duration <= 0 or y0 <= self.ground:
            return np.array([0.0, max(self._duration, 0.0)]), np.array([y0, y0])

        def fall(t, state):
            return [state[1], self.gravity]

        def apex(t, state):
            return state[1]
        apex.terminal = True
        apex.direction = -1

        def hit_ground(t, state):
            return state[0] - self.ground
        hit_ground.terminal = True
        hit_ground.direction = -1

        times, heights = [0.0], [y0]
        t0, state = 0.0, [y0, 0.0]
        for _ in range(BOUNCE_MAX_CONTACTS):
            # Rebounds rise to the apex first so no phase starts on its own event
            phases = (apex, hit_ground) if state[1] > 0 else (hit_ground,)
            for event in phases:
                if t0 >= self._duration:
                    return self._close_trajectory(times, heights)
                sol = solve_ivp(fall, (t0, self._duration), state, events=event, dense_output=True)
                samples = np.linspace(t0, sol.t[-1], BOUNCE_SAMPLES_PER_ARC)[1:]
                times.extend(samples.tolist())
                heights.extend(sol.sol(samples)[0].tolist())
                if sol.status != 1:
                    return self._close_trajectory(times, heights)
                t0 = float(sol.t_events[0][0])
                state = [float(v) for v in sol.y_events[0][0]]

            heights[-1] = self.ground
            speed = -state[1] * self.elasticity
            if speed < self.rest_speed:
                break
            state = [self.ground, speed]

        return self._close_trajectory(times, heights)

    def _close_trajectory(self, times: List[float], heights: List[float]) -> Tuple[np.ndarray, np.ndarray]:
        if times[-1] < self._duration:
            times.append(self._duration)
            heights.append(heights[-1])
        return np.array(times), np.array(heights)

    def apply(self, progress: float):
        height = float(np.interp(progress * self._duration, self.times, self.heights))
        self.target.move_to((self.start[0], height))


class AnimationGroup(Animation):
    """Runs children together; each child's progress is rescaled to its own duration"""

    def __init__(self, animations: Sequence[Animation]):
        self.animations = list(animations)
        duration = max((a.duration for a in self.animations), default=0.0)
        super().__init__(None, duration)

    def reset(self):
        super().reset()
        for animation in self.animations:
            animation.reset()

    def update(self, progress: float):
        super().update(progress)
        self.finished = self.finished and all(a.is_finished() for a in self.animations)

    def apply(self, progress: float):
        for animation in self.animations:
            if animation.duration <= 0:
                local = 1.0
            else:
                local = min(progress * self._duration / animation.duration, 1.0)
            animation.update(local)


class WaitAnimation(Animation):
    """Lets time pass without touching any shape"""

    def __init__(self, duration: float):
        super().__init__(None, duration)

    def apply(self, progress: float):
        pass


# ============================================================================
# RENDERING SURFACES AND VIDEO ENCODING
# ============================================================================

class RenderSurface:
    """Drawing surface interface used by Scene"""

    def __init__(self, width: int, height: int, coords: Optional[CoordinateSystem] = None):
        self.width = width
        self.height = height
        self.coords = coords if coords is not None else CoordinateSystem(width, height)

    def clear(self, background: Color):
        raise NotImplementedError

    def draw(self, shape: Shape):
        raise NotImplementedError

    def present(self):
        raise NotImplementedError

    def save_frame(self, path: str):
        raise NotImplementedError


class MatplotlibSurface(RenderSurface):
    """Rasterizes shapes on an off-screen matplotlib (Agg) figure sized in pixels"""

    def __init__(self, width: int, height: int, coords: Optional[CoordinateSystem] = None,
                 dpi: int = 100):
        super().__init__(width, height, coords)
        self.dpi = dpi
        self.figure = Figure(figsize=(width / dpi, height / dpi), dpi=dpi)
        self.canvas = FigureCanvasAgg(self.figure)
        self.ax = self.figure.add_axes([0, 0, 1, 1])
        self._reset_axes()

    def _reset_axes(self):
        self.ax.set_xlim(0, self.width)
        self.ax.set_ylim(self.height, 0)
        self.ax.set_axis_off()

    def pixels(self, value: float) -> float:
        """Convert a pixel length to points for matplotlib"""
        return value * 72.0 / self.dpi

    def clear(self, background: Color):
        self.ax.clear()
        self._reset_axes()
        self.figure.set_facecolor(background.to_mpl())

    def draw(self, shape: Shape):
        linewidth = self.pixels(shape.stroke_width)

        if isinstance(shape, Text):
            x, y = self.coords.to_screen(shape.center)
            self.ax.text(x, y, shape.content, fontsize=self.pixels(shape.font_size),
                         color=shape.color.to_mpl(shape.fill_opacity),
                         ha="center", va="center", rotation=math.degrees(shape.angle))
            return

        screen = self.coords.to_screen(shape.points)
        if shape.closed:
            self.ax.add_patch(PolygonPatch(screen, closed=True,
                                           facecolor=shape.color.to_mpl(shape.fill_opacity),
                                           edgecolor=shape.color.to_mpl(),
                                           linewidth=linewidth))
            return

        stroke = shape.color.to_mpl(shape.fill_opacity)
        self.ax.plot(screen[:, 0], screen[:, 1], color=stroke, linewidth=linewidth,
                     solid_capstyle="round")
        if isinstance(shape, Arrow):
            head = shape.head_points()
            if head is not None:
                self.ax.add_patch(PolygonPatch(self.coords.to_screen(head), closed=True,
                                               facecolor=stroke, edgecolor=stroke,
                                               linewidth=linewidth))

    def present(self):
        self.canvas.draw()

    def image(self) -> np.ndarray:
        """Current frame as an (height, width, 4) uint8 array"""
        self.canvas.draw()
        return np.asarray(self.canvas.buffer_rgba()).copy()

    def save_frame(self, path: str):
        self.figure.savefig(path, dpi=self.dpi, facecolor=self.figure.get_facecolor())


class RecordingSurface(RenderSurface):
    """Headless surface that records every call and a summary of each presented frame"""

    def __init__(self, width: int = DEFAULT_WIDTH, height: int = DEFAULT_HEIGHT,
                 coords: Optional[CoordinateSystem] = None):
        super().__init__(width, height, coords)
        self.calls: List[Tuple[str, Any]] = []
        self.frames: List[List[dict]] = []
        self.saved: List[str] = []
        self._pending: List[dict] = []

    def clear(self, background: Color):
        self.calls.append(("clear", background))
        self._pending = []

    def draw(self, shape: Shape):
        self.calls.append(("draw", shape.name))
        self._pending.append({
            "name": shape.name,
            "kind": shape.kind,
            "center": tuple(float(v) for v in shape.center),
            "points": shape.points.copy(),
            "color": shape.color,
            "opacity": shape.fill_opacity,
        })

    def present(self):
        self.calls.append(("present", len(self._pending)))
        self.frames.append(self._pending)
        self._pending = []

    def save_frame(self, path: str):
        self.calls.append(("save_frame", path))
        self.saved.append(path)

    def count(self, call: str) -> int:
        return sum(1 for name, _ in self.calls if name == call)


class VideoEncoder:
    """Encodes a directory of numbered PNG frames (frame_0000.png, ...) into a video"""

    def __init__(self, ffmpeg: str = "ffmpeg", codec: str = "libx264",
                 pixel_format: str = "yuv420p"):
        self.ffmpeg = ffmpeg
        self.codec = codec
        self.pixel_format = pixel_format

    def has_ffmpeg(self) -> bool:
        """Check if ffmpeg is available"""
        return shutil.which(self.ffmpeg) is not None

    def frame_files(self, frame_dir: str) -> List[str]:
        if not os.path.isdir(frame_dir):
            return []
        names = sorted(n for n in os.listdir(frame_dir) if re.fullmatch(r"frame_\d+\.png", n))
        return [os.path.join(frame_dir, n) for n in names]

    def encode(self, frame_dir: str, fps: float, output: str) -> bool:
        """Returns True when the video was written; failures only warn"""
        if output.lower().endswith(".gif"):
            return self.encode_gif(self.frame_files(frame_dir), fps, output)

        if not self.has_ffmpeg():
            warnings.warn(f"ffmpeg not found; frames kept in {frame_dir}")
            return False

        command = [self.ffmpeg, "-y", "-r", f"{fps:g}",
                   "-i", os.path.join(frame_dir, FRAME_TEMPLATE),
                   "-c:v", self.codec, "-pix_fmt", self.pixel_format, output]
        result = subprocess.run(command, capture_output=True, text=True)
        if result.returncode != 0:
            warnings.warn(f"ffmpeg failed with exit code {result.returncode}: {result.stderr.strip()[-400:]}")
            return False
        return True

    def encode_gif(self, frames: List[str], fps: float, output: str) -> bool:
        from PIL import Image

        if not frames:
            warnings.warn(f"No frames to encode into {output}")
            return False
        images = []
        for path in frames:
            with Image.open(path) as image:
                images.append(image.convert("RGB"))
        images[0].save(output, save_all=True, append_images=images[1:],
                       duration=int(round(1000.0 / fps)), loop=0)
        return True


# ============================================================================
# SCENE / TIMELINE DRIVER
# ============================================================================

def frame_count(duration: float, frame_rate: float) -> int:
    """round(duration * frame_rate), halves rounded up"""
    return max(int(math.floor(duration * frame_rate + 0.5)), 0)


class Scene:
    """Canvas, ordered shape list, coordinate system and the surface frames go to"""

    def __init__(self, width: int = DEFAULT_WIDTH, height: int = DEFAULT_HEIGHT,
                 name: str = "untitled", frame_rate: float = DEFAULT_FRAME_RATE,
                 background: Color = DEFAULT_BACKGROUND,
                 surface_factory: Optional[Callable[..., RenderSurface]] = None,
                 auto_scale: bool = False, real_time: bool = False, scale: float = 1.0):
        if frame_rate <= 0:
            raise ValueError(f"frame rate must be positive, got {frame_rate}")
        self.width = width
        self.height = height
        self.name = name
        self.frame_rate = frame_rate
        self.background = background
        self.auto_scale = auto_scale
        self.real_time = real_time
        self.coords = CoordinateSystem(width, height, scale)
        factory = surface_factory or MatplotlibSurface
        self.surface = factory(width, height, self.coords)
        self.shapes: List[Shape] = []
        self.frames_rendered = 0
        self.time = 0.0

    def add(self, shape: Shape) -> Shape:
        self.shapes.append(shape)
        return shape

    def remove(self, shape: Shape):
        self.shapes = [s for s in self.shapes if s is not shape]

    def fit_coordinates(self):
        if self.auto_scale:
            self.coords.fit_shapes(self.shapes)

    def render_frame(self):
        self.surface.clear(self.background)
        for shape in self.shapes:
            self.surface.draw(shape)
        self.surface.present()
        self.frames_rendered += 1
        if self.real_time:
            time.sleep(1.0 / self.frame_rate)

    def render(self):
        self.fit_coordinates()
        self.render_frame()

    def hold(self, frames: int) -> int:
        """Render `frames` still frames of the current state"""
        self.fit_coordinates()
        for _ in range(frames):
            self.render_frame()
        self.time += frames / self.frame_rate
        return frames

    def play(self, animation: Animation) -> int:
        """
        Step an animation to completion, one rendered frame per step

        Frames 0..round(duration * frame_rate) are rendered inclusive, so a
        one-second animation at 30 fps produces 31 frames.

        Returns:
            Number of frames rendered
        """
        animation.reset()
        total = frame_count(animation.duration, self.frame_rate)
        self.fit_coordinates()

        frame = 0
        while True:
            progress = 1.0 if total == 0 else min(frame / total, 1.0)
            animation.update(progress)
            self.render_frame()
            frame += 1
            if animation.is_finished() or progress >= 1.0:
                break
        self.time += animation.duration
        return frame

    def save_frame(self, path: str):
        self.surface.save_frame(path)

    def export_frames(self, frame_dir: str, fps: float, duration: float) -> List[str]:
        """Write round(fps * duration) numbered still frames into frame_dir"""
        os.makedirs(frame_dir, exist_ok=True)
        self.fit_coordinates()
        paths = []
        for index in range(frame_count(duration, fps)):
            self.render_frame()
            path = os.path.join(frame_dir, FRAME_TEMPLATE % index)
            self.surface.save_frame(path)
            paths.append(path)
        return paths

    def __repr__(self):
        return f"Scene({self.name!r}, {self.width}x{self.height}, {len(self.shapes)} shapes)"


# ============================================================================
# EVALUATOR
# ============================================================================

class EvaluationError(RuntimeError):
    """Runtime script error with line, object and property context"""

    def __init__(self, message: str, line: int = 0, obj: Optional[str] = None,
                 prop: Optional[str] = None):
        super().__init__(f"line {line}: {message}")
        self.message = message
        self.line = line
        self.obj = obj
        self.prop = prop


# Accepted AST node types for each parameter slot in an argument layout
ARGUMENT_KINDS = {
    "number": (NumberLit,),
    "point": (CoordinateExpr,),
    "points": (ArrayExpr,),
    "string": (StringLit,),
    "word": (StringLit, Identifier),
    "size": (NumberLit, StringLit, Identifier),
    "color": (ColorLit, StringLit, Identifier),
}

CREATE_LAYOUTS = {
    "circle": [("number", "point"), ("point", "number"), ("number",)],
    "rectangle": [("number", "number", "point"), ("number", "number")],
    "line": [("point", "point")],
    "arrow": [("point", "point")],
    "polygon": [("points",)],
    "text": [("string", "size", "point"), ("string", "size")],
    "triangle": [("point", "point", "point"),
                 ("word", "number", "number", "point"), ("word", "number", "number"),
                 ("word", "number", "point"), ("word", "number"),
                 ("number", "point"), ("number",)],
}

ANIMATION_LAYOUTS = {
    "move": [("point",)],
    "scale": [("number",)],
    "rotate": [("number",)],
    "fadein": [()],
    "fadeout": [()],
    "color": [("color",)],
    "elastic": [("word", "number"), ("number",)],
    "bounce": [(), ("number",), ("number", "number"), ("number", "number", "number")],
}


def match_layout(params: Sequence[Expression], layouts: Sequence[Tuple[str, ...]]) -> Tuple[str, ...]:
    """Return the first layout the parameters fit, in priority order"""
    for layout in layouts:
        if len(layout) == len(params) and all(
                isinstance(param, ARGUMENT_KINDS[slot]) for slot, param in zip(layout, params)):
            return layout
    accepted = " | ".join(" ".join(layout) or "(nothing)" for layout in layouts)
    given = " ".join(param.label for param in params) or "nothing"
    raise ValueError(f"expected {accepted}; got {given}")


class SceneEvaluator:
    """
    Tree-walking evaluator

    Owns the name -> shape table and the active scene. Execution stops at the
    first error, which is returned from evaluate() and appended to
    `diagnostics`; mutations made before it are kept.
    """

    def __init__(self, frame_rate: float = DEFAULT_FRAME_RATE,
                 output_dir: str = DEFAULT_OUTPUT_DIR, base_dir: Optional[str] = None,
                 surface_factory: Optional[Callable[..., RenderSurface]] = None,
                 encoder: Optional[VideoEncoder] = None, auto_scale: bool = False,
                 real_time: bool = False, background: Color = DEFAULT_BACKGROUND,
                 verbose: bool = False):
        self.frame_rate = frame_rate
        self.base_dir = base_dir if base_dir is not None else os.getcwd()
        self.output_dir = os.path.join(self.base_dir, output_dir)
        self.surface_factory = surface_factory
        self.encoder = encoder or VideoEncoder()
        self.auto_scale = auto_scale
        self.real_time = real_time
        self.background = background
        self.verbose = verbose

        self.objects: Dict[str, Shape] = {}
        self.scene: Optional[Scene] = None
        self.project_name = "untitled"
        self.diagnostics: List[str] = []
        self.current_line = 0
        self.elapsed_time = 0.0
        self.saved_files: List[str] = []
        self._retired_frames = 0

        self.statement_handlers = {
            SceneStmt: self.exec_scene,
            CreateStmt: self.exec_create,
            SetStmt: self.exec_set,
            AnimateStmt: self.exec_animate,
            RenderStmt: self.exec_render,
            RenderFramesStmt: self.exec_render_frames,
            SaveStmt: self.exec_save,
            ExportStmt: self.exec_export,
            VideoStmt: self.exec_video,
            WaitStmt: self.exec_wait,
            LoopStmt: self.exec_loop,
            CleanStmt: self.exec_clean,
        }
        self.shape_builders = {
            "circle": self.build_circle,
            "rectangle": self.build_rectangle,
            "line": self.build_line,
            "arrow": self.build_arrow,
            "polygon": self.build_polygon,
            "text": self.build_text,
            "triangle": self.build_triangle,
        }
        self.property_setters = {
            "color": self.set_color,
            "position": self.set_position,
            "opacity": self.set_opacity,
            "size": self.set_size,
            "width": self.set_width,
            "height": self.set_height,
            "vertex1": self.set_vertex,
            "vertex2": self.set_vertex,
            "vertex3": self.set_vertex,
            "vertices": self.set_vertices,
        }
        self.animation_builders = {
            "move": self.build_move,
            "scale": self.build_scale,
            "rotate": self.build_rotate,
            "fadein": self.build_fadein,
            "fadeout": self.build_fadeout,
            "color": self.build_color,
            "path": self.build_path,
            "elastic": self.build_elastic,
            "bounce": self.build_bounce,
        }

    @property
    def frames_rendered(self) -> int:
        current = self.scene.frames_rendered if self.scene is not None else 0
        return self._retired_frames + current

    def log(self, message: str):
        if self.verbose:
            print(message)

    def error(self, message: str, obj: Optional[str] = None,
              prop: Optional[str] = None) -> EvaluationError:
        return EvaluationError(message, self.current_line, obj, prop)

    def evaluate(self, program: Program) -> Optional[EvaluationError]:
        """Run every statement; returns the first error, or None on success"""
        try:
            self.execute_block(program.statements)
        except EvaluationError as e:
            self.diagnostics.append(str(e))
            return e
        return None

    def execute_block(self, statements: Sequence[Statement]):
        for statement in statements:
            self.execute(statement)

    def execute(self, statement: Statement):
        self.current_line = statement.line
        handler = self.statement_handlers.get(type(statement))
        if handler is None:
            raise self.error(f"unsupported statement {type(statement).__name__}")
        handler(statement)

    def require_scene(self) -> Scene:
        if self.scene is None:
            raise self.error("no scene defined; start the script with: scene <width> <height> \"name\"")
        return self.scene

    def lookup(self, name: str, prop: Optional[str] = None) -> Shape:
        shape = self.objects.get(name)
        if shape is None:
            raise self.error(f"unknown object '{name}'", obj=name, prop=prop)
        return shape

    # ------------------------------------------------------------------
    # Values
    # ------------------------------------------------------------------

    def evaluate_expression(self, expr: Expression) -> Any:
        if isinstance(expr, NumberLit):
            return expr.value
        if isinstance(expr, (StringLit, ColorLit)):
            return expr.value
        if isinstance(expr, Identifier):
            return expr.name
        if isinstance(expr, CoordinateExpr):
            if not isinstance(expr.x, NumberLit) or not isinstance(expr.y, NumberLit):
                raise ValueError(f"coordinate components must be numbers, got {expr!r}")
            return (expr.x.value, expr.y.value)
        if isinstance(expr, ArrayExpr):
            return [self.evaluate_expression(e) for e in expr.elements]
        raise ValueError(f"cannot evaluate {expr!r}")

    def arguments(self, params: Sequence[Expression],
                  layouts: Sequence[Tuple[str, ...]]) -> Tuple[Tuple[str, ...], List[Any]]:
        layout = match_layout(params, layouts)
        return layout, [self.evaluate_expression(p) for p in params]

    def value_of(self, expr: Expression, kind: str) -> Any:
        if not isinstance(expr, ARGUMENT_KINDS[kind]):
            raise ValueError(f"expected a {kind}, got {expr.label} {expr!r}")
        return self.evaluate_expression(expr)

    def point_list(self, expr: Expression) -> List[Point]:
        points = self.value_of(expr, "points")
        if not all(isinstance(p, tuple) for p in points):
            raise ValueError("expected an array of (x, y) coordinates")
        return points

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def exec_scene(self, stmt: SceneStmt):
        width = int(stmt.width)
        if width <= 0:
            width = DEFAULT_WIDTH
        height = int(stmt.height)
        if height <= 0:
            height = DEFAULT_HEIGHT
        if self.scene is not None:
            self._retired_frames += self.scene.frames_rendered
        self.scene = Scene(width, height, name=stmt.name, frame_rate=self.frame_rate,
                           background=self.background, surface_factory=self.surface_factory,
                           auto_scale=self.auto_scale, real_time=self.real_time)
        self.objects.clear()
        self.project_name = stmt.name or "untitled"
        self.log(f"Scene '{self.project_name}' {width}x{height}")

    def exec_create(self, stmt: CreateStmt):
        scene = self.require_scene()
        builder = self.shape_builders[stmt.kind]
        try:
            shape = builder(stmt.params)
        except ValueError as e:
            raise self.error(f"cannot create {stmt.kind} '{stmt.name}': {e}", obj=stmt.name) from e
        shape.name = stmt.name
        self.objects[stmt.name] = scene.add(shape)
        self.log(f"Created {stmt.kind} '{stmt.name}'")

    def exec_set(self, stmt: SetStmt):
        shape = self.lookup(stmt.name, prop=stmt.prop)
        try:
            self.property_setters[stmt.prop](shape, stmt.prop, stmt.value)
        except ValueError as e:
            raise self.error(f"cannot set {stmt.name}.{stmt.prop}: {e}",
                             obj=stmt.name, prop=stmt.prop) from e

    def exec_animate(self, stmt: AnimateStmt):
        scene = self.require_scene()
        shape = self.lookup(stmt.name)
        params, interpolation = self.split_interpolation(stmt.params)
        try:
            animation = self.animation_builders[stmt.kind](shape, params, stmt.duration)
        except ValueError as e:
            raise self.error(f"cannot animate {stmt.kind} on '{stmt.name}': {e}", obj=stmt.name) from e
        if interpolation is not None:
            animation.interpolation = interpolation
        frames = scene.play(animation)
        self.elapsed_time += animation.duration
        self.log(f"Animated {stmt.kind} '{stmt.name}' over {frames} frames")

    def split_interpolation(self, params: Sequence[Expression]) -> Tuple[List[Expression], Optional[Interpolation]]:
        """Pull out an identifier naming an interpolation strategy"""
        remaining, chosen = [], None
        for param in params:
            if isinstance(param, Identifier) and Interpolation.is_name(param.name):
                chosen = Interpolation.from_name(param.name)
            else:
                remaining.append(param)
        return remaining, chosen

    def exec_render(self, stmt: RenderStmt):
        self.require_scene().render()

    def exec_render_frames(self, stmt: RenderFramesStmt):
        scene = self.require_scene()
        count = int(stmt.count)
        if count < 0:
            raise self.error(f"frame count must not be negative, got {count}")
        scene.hold(count)
        self.elapsed_time += count / self.frame_rate

    def exec_save(self, stmt: SaveStmt):
        scene = self.require_scene()
        filename = stmt.filename if stmt.filename.lower().endswith(".png") else stmt.filename + ".png"
        path = os.path.join(self.output_dir, self.project_name, "frames", filename)
        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            scene.save_frame(path)
        except OSError as e:
            raise self.error(f"cannot save frame '{path}': {e}") from e
        self.saved_files.append(path)
        self.log(f"Saved {path}")

    def exec_export(self, stmt: ExportStmt):
        fps = DEFAULT_EXPORT_FPS if stmt.fps is None else stmt.fps
        duration = DEFAULT_EXPORT_DURATION if stmt.duration is None else stmt.duration
        self.export_video(stmt.filename, fps, duration)

    def exec_video(self, stmt: VideoStmt):
        self.export_video(stmt.filename, stmt.fps, stmt.duration)

    def export_video(self, filename: str, fps: float, duration: float):
        scene = self.require_scene()
        if fps <= 0 or duration <= 0:
            raise self.error(f"fps and duration must be positive, got {fps:g} and {duration:g}")
        stem, extension = os.path.splitext(filename)
        if not extension:
            filename += ".mp4"
        project_dir = os.path.join(self.output_dir, self.project_name)
        frame_dir = os.path.join(project_dir, f"{stem}_frames")
        output = os.path.join(project_dir, filename)
        try:
            frames = scene.export_frames(frame_dir, fps, duration)
            encoded = self.encoder.encode(frame_dir, fps, output)
            if encoded:
                shutil.rmtree(frame_dir)
        except OSError as e:
            raise self.error(f"cannot export '{output}': {e}") from e
        if encoded:
            self.saved_files.append(output)
            self.log(f"Exported {output} ({len(frames)} frames)")
        else:
            self.log(f"Frames written to {frame_dir}")

    def exec_wait(self, stmt: WaitStmt):
        if stmt.seconds < 0:
            raise self.error(f"wait time must not be negative, got {stmt.seconds:g}")
        if self.scene is not None:
            self.scene.play(WaitAnimation(stmt.seconds))
        self.elapsed_time += stmt.seconds

    def exec_loop(self, stmt: LoopStmt):
        for _ in range(int(stmt.count)):
            self.execute_block(stmt.body)

    def exec_clean(self, stmt: CleanStmt):
        names = stmt.directories or DEFAULT_CLEAN_DIRS
        for name in names:
            if not name or ".." in name or "/" in name or "\\" in name:
                raise self.error(f"refusing to clean unsafe directory name '{name}'")
        for name in names:
            path = os.path.join(self.base_dir, name)
            try:
                if os.path.isdir(path):
                    shutil.rmtree(path)
                os.makedirs(path, exist_ok=True)
            except OSError as e:
                raise self.error(f"cannot clean '{path}': {e}") from e
            self.log(f"Cleaned {path}")

    # ------------------------------------------------------------------
    # Shape construction
    # ------------------------------------------------------------------

    def build_circle(self, params: Sequence[Expression]) -> Shape:
        layout, values = self.arguments(params, CREATE_LAYOUTS["circle"])
        if layout[0] == "point":
            center, radius = values
        else:
            radius, center = values[0], (values[1] if len(values) > 1 else (0.0, 0.0))
        return Circle(radius, center)

    def build_rectangle(self, params: Sequence[Expression]) -> Shape:
        _, values = self.arguments(params, CREATE_LAYOUTS["rectangle"])
        return Rectangle(*values)

    def build_line(self, params: Sequence[Expression]) -> Shape:
        _, values = self.arguments(params, CREATE_LAYOUTS["line"])
        return Line(*values)

    def build_arrow(self, params: Sequence[Expression]) -> Shape:
        _, values = self.arguments(params, CREATE_LAYOUTS["arrow"])
        return Arrow(*values)

    def build_polygon(self, params: Sequence[Expression]) -> Shape:
        match_layout(params, CREATE_LAYOUTS["polygon"])
        return Polygon(self.point_list(params[0]))

    def build_text(self, params: Sequence[Expression]) -> Shape:
        _, values = self.arguments(params, CREATE_LAYOUTS["text"])
        content, size = values[0], resolve_font_size(values[1])
        position = values[2] if len(values) > 2 else (0.0, 0.0)
        return Text(content, size, position)

    def build_triangle(self, params: Sequence[Expression]) -> Shape:
        layout, values = self.arguments(params, CREATE_LAYOUTS["triangle"])
        if layout[0] == "point":
            return Triangle(*values)
        if layout[0] == "number":
            return Triangle.centered(*values)

        kind = values[0].lower()
        if kind not in TRIANGLE_TYPES:
            raise ValueError(f"unknown triangle type '{values[0]}' (choose from {', '.join(TRIANGLE_TYPES)})")
        factory, arity = TRIANGLE_TYPES[kind]
        numbers = [v for v in values[1:] if not isinstance(v, tuple)]
        if len(numbers) != arity:
            raise ValueError(f"{kind} triangle takes {arity} size value(s), got {len(numbers)}")
        center = values[-1] if layout[-1] == "point" else (0.0, 0.0)
        return factory(*numbers, center)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    def unsupported(self, shape: Shape, prop: str) -> EvaluationError:
        return self.error(f"property '{prop}' is not supported by {shape.kind} '{shape.name}'",
                          obj=shape.name, prop=prop)

    def set_color(self, shape: Shape, prop: str, expr: Expression):
        shape.color = resolve_color(self.value_of(expr, "color"))

    def set_position(self, shape: Shape, prop: str, expr: Expression):
        shape.move_to(self.value_of(expr, "point"))

    def set_opacity(self, shape: Shape, prop: str, expr: Expression):
        opacity = self.value_of(expr, "number")
        if not 0.0 <= opacity <= 1.0:
            raise ValueError(f"opacity must be between 0 and 1, got {opacity:g}")
        shape.fill_opacity = opacity

    def set_size(self, shape: Shape, prop: str, expr: Expression):
        if isinstance(shape, Circle):
            shape.set_radius(self.value_of(expr, "number"))
        elif isinstance(shape, Text):
            shape.font_size = resolve_font_size(self.value_of(expr, "size"))
        else:
            raise self.unsupported(shape, prop)

    def set_width(self, shape: Shape, prop: str, expr: Expression):
        if not isinstance(shape, Rectangle):
            raise self.unsupported(shape, prop)
        shape.set_size(width=self.value_of(expr, "number"))

    def set_height(self, shape: Shape, prop: str, expr: Expression):
        if not isinstance(shape, Rectangle):
            raise self.unsupported(shape, prop)
        shape.set_size(height=self.value_of(expr, "number"))

    def set_vertex(self, shape: Shape, prop: str, expr: Expression):
        if not isinstance(shape, Triangle):
            raise self.unsupported(shape, prop)
        shape.set_vertex(int(prop[-1]) - 1, self.value_of(expr, "point"))

    def set_vertices(self, shape: Shape, prop: str, expr: Expression):
        if not isinstance(shape, (Triangle, Polygon)):
            raise self.unsupported(shape, prop)
        shape.set_vertices(self.point_list(expr))

    # ------------------------------------------------------------------
    # Animation construction
    # ------------------------------------------------------------------

    def build_move(self, shape: Shape, params, duration: float) -> Animation:
        _, (destination,) = self.arguments(params, ANIMATION_LAYOUTS["move"])
        return MoveAnimation(shape, destination, duration)

    def build_scale(self, shape: Shape, params, duration: float) -> Animation:
        _, (factor,) = self.arguments(params, ANIMATION_LAYOUTS["scale"])
        if factor <= 0:
            raise ValueError(f"scale factor must be positive, got {factor:g}")
        return ScaleAnimation(shape, factor, duration)

    def build_rotate(self, shape: Shape, params, duration: float) -> Animation:
        _, (angle,) = self.arguments(params, ANIMATION_LAYOUTS["rotate"])
        return RotateAnimation(shape, angle, duration)

    def build_fadein(self, shape: Shape, params, duration: float) -> Animation:
        self.arguments(params, ANIMATION_LAYOUTS["fadein"])
        return FadeInAnimation(shape, duration)

    def build_fadeout(self, shape: Shape, params, duration: float) -> Animation:
        self.arguments(params, ANIMATION_LAYOUTS["fadeout"])
        return FadeOutAnimation(shape, duration)

    def build_color(self, shape: Shape, params, duration: float) -> Animation:
        _, (color,) = self.arguments(params, ANIMATION_LAYOUTS["color"])
        return ColorAnimation(shape, resolve_color(color), duration)

    def build_path(self, shape: Shape, params, duration: float) -> Animation:
        if len(params) == 1 and isinstance(params[0], ArrayExpr):
            points = self.point_list(params[0])
        elif params and all(isinstance(p, CoordinateExpr) for p in params):
            points = [self.evaluate_expression(p) for p in params]
        else:
            raise ValueError("expected an array of points or one or more (x, y) coordinates")
        return PathAnimation(shape, points, duration)

    def build_elastic(self, shape: Shape, params, duration: float) -> Animation:
        layout, values = self.arguments(params, ANIMATION_LAYOUTS["elastic"])
        if layout == ("number",):
            return ElasticAnimation(shape, "scale", values[0], duration)
        return ElasticAnimation(shape, values[0].lower(), values[1], duration)

    def build_bounce(self, shape: Shape, params, duration: float) -> Animation:
        _, values = self.arguments(params, ANIMATION_LAYOUTS["bounce"])
        options = dict(zip(("ground", "elasticity", "gravity"), values))
        return BounceAnimation(shape, duration, **options)


# ============================================================================
# INTERPRETER
# ============================================================================

class MotionInterpreter:
    """
    Main entry point: script text -> tokens -> AST -> evaluation

    Extra keyword arguments configure the SceneEvaluator (frame_rate,
    output_dir, surface_factory, auto_scale, ...).
    """

    def __init__(self, debug: bool = False, **evaluator_options):
        self.debug = debug
        self.evaluator = SceneEvaluator(**evaluator_options)
        self.program: Optional[Program] = None
        self.parse_errors: List[Diagnostic] = []
        self.run_time: Optional[float] = None

    def run_source(self, source: str) -> dict:
        """
        Parse and execute a script

        Args:
            source: script text

        Returns:
            Result dictionary
        """
        start_time = time.time()

        tokens = tokenize(source)
        if self.debug:
            self.print_tokens(tokens)

        parser = MotionParser(tokens)
        self.program = parser.parse_program()
        self.parse_errors = parser.errors

        if parser.errors:
            self.run_time = time.time() - start_time
            return {
                'success': False,
                'error': f"{len(parser.errors)} syntax error(s)",
                'diagnostics': [str(d) for d in parser.errors],
                'objects': [],
                'frames': 0,
                'elapsed_time': 0.0,
                'run_time': self.run_time,
            }

        if self.debug:
            self.print_program(self.program)

        error = self.evaluator.evaluate(self.program)
        self.run_time = time.time() - start_time

        return {
            'success': error is None,
            'error': None if error is None else str(error),
            'diagnostics': list(self.evaluator.diagnostics),
            'objects': list(self.evaluator.objects),
            'frames': self.evaluator.frames_rendered,
            'elapsed_time': self.evaluator.elapsed_time,
            'run_time': self.run_time,
        }

    def run_file(self, path: str) -> dict:
        with open(path, 'r', encoding='utf-8') as f:
            return self.run_source(f.read())

    def print_tokens(self, tokens: List[Token]):
        print(f"\n{'='*70}")
        print(f"Tokens ({len(tokens)})")
        print(f"{'='*70}")
        for token in tokens:
            print(f"  {token!r}")

    def print_program(self, program: Program):
        print(f"\n{'='*70}")
        print(f"AST ({len(program)} statements)")
        print(f"{'='*70}")
        for statement in program:
            print(f"  {statement!r}")

    def print_objects(self):
        """Print the current object table"""
        objects = self.evaluator.objects
        if not objects:
            print("No objects.")
            return
        print(f"\n{'='*70}")
        print(f"Objects in scene '{self.evaluator.project_name}'")
        print(f"{'='*70}")
        for name, shape in objects.items():
            x, y = shape.center
            print(f"  {name:<16} {shape.kind:<10} center=({x:.2f}, {y:.2f}) "
                  f"color={shape.color.to_hex()} opacity={shape.fill_opacity:.2f}")

    def get_info(self) -> dict:
        """Get a summary of the interpreter state"""
        scene = self.evaluator.scene
        return {
            'scene': scene.name if scene else None,
            'size': (scene.width, scene.height) if scene else None,
            'scale': scene.coords.scale if scene else None,
            'objects': {name: shape.kind for name, shape in self.evaluator.objects.items()},
            'frames': self.evaluator.frames_rendered,
            'elapsed_time': self.evaluator.elapsed_time,
            'saved_files': list(self.evaluator.saved_files),
            'diagnostics': list(self.evaluator.diagnostics),
            'run_time': self.run_time,
        }


def run_script(source: str, **options) -> dict:
    """Run a script with a fresh interpreter"""
    interpreter = MotionInterpreter(**options)
    result = interpreter.run_source(source)
    result['interpreter'] = interpreter
    return result


# ============================================================================
# EXAMPLE SCRIPTS
# ============================================================================

def example_basic_shapes() -> str:
    """Example: one of every shape, styled and saved"""
    return """
scene 800 600 "basic_shapes"

create circle sun 60 (-250, 150)
create rectangle box 160 90 (0, 150)
create triangle roof equilateral 120 (250, 150)
create line ground (-350, -150) (350, -150)
create arrow pointer (-200, -50) (-50, -50)
create polygon kite [(100, -20), (160, -80), (100, -200), (40, -80)]
create text title "MotionDSL" title (0, 250)

set sun.color = mathorange
set sun.opacity = 0.8
set box.color = primary
set roof.color = #8E44AD
set kite.color = mathgreen

render
save "shapes"
"""


def example_animation_showcase() -> str:
    """Example: move, scale, rotate, color and fades"""
    return """
scene 800 600 "showcase"

create circle ball 40 (-250, 0)
create rectangle card 120 80 (150, 0)
set ball.color = mathred
set card.color = mathblue
set card.opacity = 0.5

animate move ball (0, 0) easeinout 1.0
animate scale ball 1.8 0.5
animate rotate card 3.14159 1.5
animate color ball mathblue 0.8
animate fadeout card 0.6
animate fadein card linear 0.6
save "showcase_end"
"""


def example_bouncing_ball() -> str:
    """Example: physics bounce with a visible floor"""
    return """
scene 800 600 "bouncing_ball"

create line floor (-350, -220) (350, -220)
create circle ball 25 (0, 200)
set ball.color = mathred
set ball.opacity = 1

animate bounce ball -195 0.75 -980 3
save "landed"
"""


def example_orbit_path() -> str:
    """Example: path animation repeated in a loop"""
    return """
scene 800 600 "orbit"

create circle planet 20 (200, 0)
create circle star 45 (0, 0)
set star.color = warning
set star.opacity = 1
set planet.color = info

loop 2 {
    animate path planet [(0, 200), (-200, 0), (0, -200), (200, 0)] linear 2
}
save "orbit"
"""


def example_elastic_text() -> str:
    """Example: elastic pop-in of a title"""
    return """
scene 800 600 "elastic"

create text headline "Hello" huge (0, 0)
create triangle marker 40 (0, -80)
set headline.color = primary

animate elastic headline scale 2.5 1.2
animate elastic marker y -150 1.0
wait 0.5
render
save "elastic"
"""


EXAMPLES = {
    'basic_shapes': example_basic_shapes,
    'animation_showcase': example_animation_showcase,
    'bouncing_ball': example_bouncing_ball,
    'orbit_path': example_orbit_path,
    'elastic_text': example_elastic_text,
}


def run_example(example_name: str = "basic_shapes",
                output_dir: str = DEFAULT_OUTPUT_DIR,
                frame_rate: float = DEFAULT_FRAME_RATE,
                dry_run: bool = False,
                verbose: bool = True) -> dict:
    """
    Run a built-in example script

    Args:
        example_name: Name of example
        output_dir: Where saved frames and videos go
        frame_rate: Simulated frames per second
        dry_run: Record frames in memory instead of rasterizing them
        verbose: Print progress

    Returns:
        Dictionary with interpreter and result
    """
    if example_name not in EXAMPLES:
        raise ValueError(f"Unknown example: {example_name}. Choose from {list(EXAMPLES.keys())}")

    interpreter = MotionInterpreter(
        frame_rate=frame_rate,
        output_dir=output_dir,
        surface_factory=RecordingSurface if dry_run else None,
        verbose=verbose,
    )
    result = interpreter.run_source(EXAMPLES[example_name]())

    if verbose:
        print(f"\n{'='*70}")
        if result['success']:
            print(f"Example '{example_name}' finished")
        else:
            print(f"Example '{example_name}' failed: {result['error']}")
            for diagnostic in result['diagnostics']:
                print(f"  {diagnostic}")
        print(f"Frames rendered: {result['frames']}")
        print(f"Simulated time: {result['elapsed_time']:.2f} s")
        print(f"Run time: {result['run_time']:.4f} seconds")
        print(f"{'='*70}\n")

    return {'interpreter': interpreter, 'result': result}


# ============================================================================
# COMMAND LINE INTERFACE
# ============================================================================

def main(argv: Optional[List[str]] = None):
    """Command line interface for MotionDSL"""
    import argparse

    parser = argparse.ArgumentParser(
        description=f'MotionDSL v{__version__} - Domain-Specific Language for 2-D Animation Scripts',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run a script
  python motion_dsl.py --file intro.anim

  # Run a built-in example without writing images
  python motion_dsl.py --example bouncing_ball --dry-run

  # Fit the view to the content and show tokens and AST
  python motion_dsl.py --file intro.anim --auto-scale --debug
        """
    )

    parser.add_argument('--file', type=str, help='Script file to run')
    parser.add_argument('--example', type=str, choices=sorted(EXAMPLES),
                        help='Run a built-in example script')
    parser.add_argument('--list-examples', action='store_true', help='List built-in examples')
    parser.add_argument('--fps', type=float, default=DEFAULT_FRAME_RATE,
                        help=f'Simulated frame rate (default: {DEFAULT_FRAME_RATE})')
    parser.add_argument('--output-dir', type=str, default=DEFAULT_OUTPUT_DIR,
                        help=f'Output directory (default: {DEFAULT_OUTPUT_DIR})')
    parser.add_argument('--auto-scale', action='store_true',
                        help='Fit the coordinate system to the scene content')
    parser.add_argument('--dry-run', action='store_true',
                        help='Record frames in memory instead of drawing them')
    parser.add_argument('--real-time', action='store_true',
                        help='Sleep between frames to play at wall-clock speed')
    parser.add_argument('--debug', action='store_true', help='Print tokens and AST')

    args = parser.parse_args(argv)

    if args.list_examples:
        for name, func in EXAMPLES.items():
            print(f"  {name:<20} {func.__doc__}")
        return 0

    if args.example:
        results = run_example(args.example, output_dir=args.output_dir,
                              frame_rate=args.fps, dry_run=args.dry_run)
        return 0 if results['result']['success'] else 1

    if not args.file:
        parser.print_help()
        return 0

    interpreter = MotionInterpreter(
        debug=args.debug,
        frame_rate=args.fps,
        output_dir=args.output_dir,
        surface_factory=RecordingSurface if args.dry_run else None,
        auto_scale=args.auto_scale,
        real_time=args.real_time,
        verbose=True,
    )
    try:
        result = interpreter.run_file(args.file)
    except FileNotFoundError:
        print(f"Error: File '{args.file}' not found")
        return 1

    if not result['success']:
        print(f"Script failed: {result['error']}")
        for diagnostic in result['diagnostics']:
            print(f"  {diagnostic}")
        return 1

    if args.debug:
        interpreter.print_objects()
    print(f"Done: {result['frames']} frames, {result['elapsed_time']:.2f} s simulated")
    return 0


# ============================================================================
# MODULE EXPORTS
# ============================================================================

__all__ = [
    'Token',
    'Lexer',
    'tokenize',
    'MotionParser',
    'parse_source',
    'Program',
    'Diagnostic',
    'ScriptSyntaxError',
    'Color',
    'NAMED_COLORS',
    'resolve_color',
    'Shape',
    'Circle',
    'Rectangle',
    'Line',
    'Arrow',
    'Polygon',
    'Text',
    'Triangle',
    'CoordinateSystem',
    'Interpolation',
    'interpolate',
    'Animation',
    'MoveAnimation',
    'ScaleAnimation',
    'RotateAnimation',
    'FadeInAnimation',
    'FadeOutAnimation',
    'ColorAnimation',
    'PathAnimation',
    'ElasticAnimation',
    'BounceAnimation',
    'AnimationGroup',
    'WaitAnimation',
    'RenderSurface',
    'MatplotlibSurface',
    'RecordingSurface',
    'VideoEncoder',
    'Scene',
    'SceneEvaluator',
    'EvaluationError',
    'MotionInterpreter',
    'run_script',
    'run_example',
    'EXAMPLES',
]


if __name__ == '__main__':
    import sys

    if len(sys.argv) == 1:
        print(f"""
╔═══════════════════════════════════════════════════════════════════╗
║                       MotionDSL v{__version__}                            ║
║          A Domain-Specific Language for 2-D Animation             ║
╚═══════════════════════════════════════════════════════════════════╝

Running the basic shapes example (dry run)...
        """)

        run_example('basic_shapes', dry_run=True)

        print("Try these options:")
        print("  --example bouncing_ball      # Physics bounce")
        print("  --file my_scene.anim         # Run your own script")
        print("  --list-examples              # See all examples")
        print("  --help                       # See all options")
    else:
        sys.exit(main())
