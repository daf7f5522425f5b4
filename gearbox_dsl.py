"""
GearboxDSL: A Domain-Specific Language for Animated Gear Trains

Describe a train of meshing gears (rotators, counters and enders) in a small
textual language, then watch it turn in the terminal. Rotation flows from the
genesis gear through parallels and followers using gear-ratio physics, every
counter emits a symbol per step and an ender stops the animation once it has
completed a full revolution.

Version: 0.1.0
"""

import re
import sys
import math
import time
import warnings
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterator, List, Optional, TextIO, Tuple

import numpy as np
import sympy as sp
import matplotlib.pyplot as plt

__version__ = "0.1.0"

# ============================================================================
# TOKEN SYSTEM
# ============================================================================

TOKEN_TYPES = [
    # Gear kinds and the label marker (single letters)
    ("ROTATOR", r"g"),
    ("COUNTER", r"c"),
    ("ENDER", r"e"),
    ("LABEL", r"l"),

    # Literals (terminated strings must come before unterminated ones)
    ("NUMBER", r"[0-9]+"),
    ("STRING", r'"(?:\\[\s\S]|[^"\\\n])*"'),
    ("UNTERMINATED_STRING", r'"(?:\\[\s\S]|[^"\\\n])*'),

    # Brackets and delimiters
    ("LBRACE", r"\{"),
    ("RBRACE", r"\}"),
    ("LBRACKET", r"\["),
    ("RBRACKET", r"\]"),
    ("COMMA", r","),

    # Ignored
    ("WHITESPACE", r"[ \t\r\n]+"),
    ("COMMENT", r";[^\n]*"),

    # Anything else is a lexical error, reported by the parser
    ("MISMATCH", r"[\s\S]"),
]

token_regex = "|".join(f"(?P<{name}>{pattern})" for name, pattern in TOKEN_TYPES)
token_pattern = re.compile(token_regex)

GEAR_TOKENS = ("ROTATOR", "COUNTER", "ENDER")

# Tooth counts are unsigned 32-bit values
MAX_TEETH = 2 ** 32 - 1

TOKEN_DESCRIPTIONS = {
    "ROTATOR": "'g'",
    "COUNTER": "'c'",
    "ENDER": "'e'",
    "LABEL": "'l'",
    "NUMBER": "number",
    "STRING": "string",
    "LBRACE": "'{'",
    "RBRACE": "'}'",
    "LBRACKET": "'['",
    "RBRACKET": "']'",
    "COMMA": "','",
}

_escape_pattern = re.compile(r"\\([\s\S])")


@dataclass
class Token:
    """Token with position tracking for error messages"""
    type: str
    value: str
    position: int = 0
    line: int = 1
    column: int = 1

    def __repr__(self):
        return f"{self.type}:{self.value}@{self.line}:{self.column}"


def tokenize(source: str) -> List[Token]:
    """
    Split gear source into tokens, dropping whitespace and comments.

    Lexical errors are not raised here: unterminated strings and unexpected
    characters come back as UNTERMINATED_STRING and MISMATCH tokens so the
    parser can report whichever problem occurs first in the source.

    Args:
        source: Gear description source

    Returns:
        List of tokens in source order
    """
    tokens = []
    line = 1
    line_start = 0

    for match in token_pattern.finditer(source):
        kind = match.lastgroup
        value = match.group()
        position = match.start()

        if kind not in ("WHITESPACE", "COMMENT"):
            tokens.append(Token(kind, value, position, line, position - line_start + 1))

        newlines = value.count("\n")
        if newlines:
            line += newlines
            line_start = position + value.rfind("\n") + 1

    return tokens


def unescape(literal: str) -> str:
    """Strip the quotes from a STRING token and resolve backslash escapes"""
    return _escape_pattern.sub(r"\1", literal[1:-1])


def location(source: str, position: int) -> Tuple[int, int]:
    """1-based (line, column) of a character offset"""
    line = source.count("\n", 0, position) + 1
    column = position - (source.rfind("\n", 0, position) + 1) + 1
    return line, column


# ============================================================================
# ERRORS
# ============================================================================

class GearSyntaxError(SyntaxError):
    """Parse error at a single source position; parsing stops at the first one."""

    def __init__(self, message: str, position: int, line: int, column: int,
                 expected: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.position = position
        self.line = line
        self.column = column
        self.expected = expected


class GearConstructionError(ValueError):
    """A gear was built with values that break the gear-train invariants"""


def format_syntax_error(error: GearSyntaxError, source: str) -> str:
    """Render *error* with the offending source line and a caret under the column"""
    lines = source.split("\n")
    text = lines[error.line - 1].expandtabs(1) if error.line <= len(lines) else ""
    return (
        f"line {error.line}, column {error.column}: {error.message}\n"
        f"  {text}\n"
        f"  {' ' * (error.column - 1)}^"
    )


# ============================================================================
# GEAR MODEL
# ============================================================================

class GearKind(Enum):
    ROTATOR = "g"
    COUNTER = "c"
    ENDER = "e"


@dataclass
class Gear:
    """
    One node of a gear train.

    ``rotation`` is overwritten by every propagation pass and only holds a
    meaningful value right after the most recent one.
    """
    kind: GearKind
    teeth: int
    parallels: List["Gear"] = field(default_factory=list)
    follower: Optional["Gear"] = None
    label: Optional[str] = None
    symbols: List[str] = field(default_factory=list)
    rotation: float = 0.0

    def __post_init__(self):
        if isinstance(self.teeth, bool) or not isinstance(self.teeth, int) or not 1 <= self.teeth <= MAX_TEETH:
            raise GearConstructionError(f"Tooth count must be an integer from 1 to {MAX_TEETH}, got {self.teeth!r}")

        if self.kind is GearKind.COUNTER:
            if not self.symbols:
                raise GearConstructionError("Counter gear needs at least one symbol")
            if self.parallels:
                raise GearConstructionError("Counter gear cannot carry parallels")
        else:
            if self.symbols or self.label is not None:
                raise GearConstructionError(f"Only counter gears take symbols or labels, not {self.kind.name.lower()}")

        if self.kind is GearKind.ENDER and (self.parallels or self.follower is not None):
            raise GearConstructionError("Ender gear cannot drive other gears")

    @classmethod
    def rotator(cls, teeth: int, parallels: Optional[List["Gear"]] = None,
                follower: Optional["Gear"] = None) -> "Gear":
        return cls(GearKind.ROTATOR, teeth, parallels=list(parallels or []), follower=follower)

    @classmethod
    def counter(cls, teeth: int, symbols: List[str], label: Optional[str] = None,
                follower: Optional["Gear"] = None) -> "Gear":
        return cls(GearKind.COUNTER, teeth, follower=follower, label=label, symbols=list(symbols))

    @classmethod
    def ender(cls, teeth: int) -> "Gear":
        return cls(GearKind.ENDER, teeth)

    @property
    def key(self) -> str:
        """Aggregation key of a counter (unlabelled counters share the empty key)"""
        return self.label if self.label is not None else ""

    @property
    def name(self) -> str:
        return f"{self.kind.value}{self.teeth}"


def _children(gear: Gear, path: str) -> Iterator[Tuple[str, Gear, bool]]:
    """Yield (path, child, is_parallel) in propagation order"""
    for index, parallel in enumerate(gear.parallels):
        yield f"{path}/p{index}:{parallel.name}", parallel, True
    if gear.follower is not None:
        yield f"{path}/f:{gear.follower.name}", gear.follower, False


def walk(root: Gear) -> Iterator[Tuple[str, Gear]]:
    """
    Depth-first traversal in propagation order, yielding (path, gear).

    Raises GearConstructionError if a gear object is reachable twice, which
    would make the train a graph rather than a tree.
    """
    seen = set()
    stack = [(root.name, root)]
    while stack:
        path, gear = stack.pop()
        if id(gear) in seen:
            raise GearConstructionError(f"Gear {path} appears more than once in the train")
        seen.add(id(gear))
        yield path, gear
        stack.extend(reversed([(p, g) for p, g, _ in _children(gear, path)]))


# ============================================================================
# PARSER
# ============================================================================

class GearboxParser:
    """Recursive-descent parser building the gear tree directly from tokens"""

    def __init__(self, tokens: List[Token], source: str = ""):
        self.tokens = tokens
        self.source = source
        self.pos = 0

    def peek(self, offset: int = 0) -> Optional[Token]:
        pos = self.pos + offset
        if pos < len(self.tokens):
            return self.tokens[pos]
        return None

    def match(self, *expected_types: str) -> Optional[Token]:
        token = self.peek()
        if token and token.type in expected_types:
            self.pos += 1
            return token
        return None

    def expect(self, expected_type: str, expected: Optional[str] = None) -> Token:
        token = self.match(expected_type)
        if not token:
            raise self.error(expected or TOKEN_DESCRIPTIONS[expected_type])
        return token

    def error(self, expected: str) -> GearSyntaxError:
        """Build the error for the current token not being *expected*"""
        token = self.peek()
        if token is None:
            position = len(self.source)
            line, column = location(self.source, position)
            return GearSyntaxError(
                f"Expected {expected} but reached end of input at {line}:{column}",
                position, line, column, expected)

        if token.type == "UNTERMINATED_STRING":
            found = "unterminated string"
        elif token.type == "MISMATCH":
            found = f"unexpected character {token.value!r}"
        else:
            found = f"{TOKEN_DESCRIPTIONS[token.type]} '{token.value}'"
        return GearSyntaxError(f"Expected {expected} but got {found} at {token.line}:{token.column}",
                               token.position, token.line, token.column, expected)

    def parse(self) -> Gear:
        """Parse the whole token stream into exactly one root gear"""
        root = self.parse_gear()
        if self.peek() is not None:
            raise self.error("end of input")
        return root

    def parse_gear(self) -> Gear:
        token = self.peek()
        handlers = {
            "ROTATOR": self.parse_rotator,
            "COUNTER": self.parse_counter,
            "ENDER": self.parse_ender,
        }
        handler = handlers.get(token.type) if token else None
        if handler is None:
            raise self.error("gear ('g', 'c' or 'e')")
        return handler()

    def parse_optional_gear(self) -> Optional[Gear]:
        token = self.peek()
        if token and token.type in GEAR_TOKENS:
            return self.parse_gear()
        return None

    def parse_teeth(self) -> int:
        token = self.expect("NUMBER", "tooth count")
        digits = token.value.lstrip("0")
        if len(digits) > len(str(MAX_TEETH)) or int(digits or "0") > MAX_TEETH:
            raise GearSyntaxError(
                f"Tooth count must be at most {MAX_TEETH} at {token.line}:{token.column}",
                token.position, token.line, token.column, "tooth count")
        teeth = int(digits or "0")
        if teeth < 1:
            raise GearSyntaxError(
                f"Tooth count must be at least 1 at {token.line}:{token.column}",
                token.position, token.line, token.column, "tooth count")
        return teeth

    def parse_rotator(self) -> Gear:
        """Parse g <teeth> [<parallels>]? <gear>?"""
        self.expect("ROTATOR")
        teeth = self.parse_teeth()
        parallels = self.parse_parallels() if self.peek() and self.peek().type == "LBRACKET" else []
        follower = self.parse_optional_gear()
        return Gear.rotator(teeth, parallels, follower)

    def parse_counter(self) -> Gear:
        """Parse c <teeth> <symbols> (l "<label>")? <gear>?"""
        self.expect("COUNTER")
        teeth = self.parse_teeth()
        symbols = self.parse_symbols()
        label = None
        if self.match("LABEL"):
            label = unescape(self.expect("STRING", "label string").value)
        follower = self.parse_optional_gear()
        return Gear.counter(teeth, symbols, label, follower)

    def parse_ender(self) -> Gear:
        """Parse e <teeth>"""
        self.expect("ENDER")
        return Gear.ender(self.parse_teeth())

    def parse_parallels(self) -> List[Gear]:
        """Parse [ <gear> (, <gear>)* ]"""
        self.expect("LBRACKET")
        parallels = [self.parse_gear()]
        while self.match("COMMA"):
            parallels.append(self.parse_gear())
        self.expect("RBRACKET", "',' or ']'")
        return parallels

    def parse_symbols(self) -> List[str]:
        """Parse either {"a", "bc", ...} or the compact "abc" (one symbol per character)"""
        token = self.peek()
        if token and token.type == "LBRACE":
            self.pos += 1
            symbols = [unescape(self.expect("STRING").value)]
            while self.match("COMMA"):
                symbols.append(unescape(self.expect("STRING").value))
            self.expect("RBRACE", "',' or '}'")
            return symbols

        if token and token.type == "STRING":
            self.pos += 1
            symbols = list(unescape(token.value))
            if not symbols:
                raise GearSyntaxError(
                    f"Symbol list must not be empty at {token.line}:{token.column}",
                    token.position, token.line, token.column, "symbol list")
            return symbols

        raise self.error("symbol list ('{' or string)")


def parse_gearbox(source: str) -> Gear:
    """Parse gear source into its genesis gear, raising GearSyntaxError on the first problem"""
    return GearboxParser(tokenize(source), source).parse()


# ============================================================================
# ROTATION PROPAGATION
# ============================================================================

GENESIS_TEETH = 1


def own_rotation(incoming_rotation: float, incoming_teeth: int, teeth: int) -> float:
    """Rotation of a gear meshing with a driver: scaled by the ratio and reversed"""
    return incoming_rotation * (incoming_teeth / teeth) * -1


def propagate(gear: Gear, incoming_rotation: float, incoming_teeth: int = GENESIS_TEETH,
              on_turn: Optional[Callable[[Gear], None]] = None) -> float:
    """
    Turn *gear* and everything it drives.

    Parallels mesh directly against the gear and are driven by the negation
    of its rotation; the follower is driven by the rotation itself. Both use
    this gear's tooth count as the driving reference. ``on_turn`` is called
    for each gear as soon as its own rotation is stored, in depth-first
    order (the gear, its parallels in declaration order, then its follower).

    Returns:
        The gear's own rotation
    """
    rotation = own_rotation(incoming_rotation, incoming_teeth, gear.teeth)
    gear.rotation = rotation
    if on_turn is not None:
        on_turn(gear)

    for parallel in gear.parallels:
        propagate(parallel, -rotation, gear.teeth, on_turn)
    if gear.follower is not None:
        propagate(gear.follower, rotation, gear.teeth, on_turn)

    return rotation


# ============================================================================
# STEP SIDE EFFECTS
# ============================================================================

def normalize_rotation(rotation: float) -> float:
    """Fold a rotation into one revolution (0 maps to 1.0, which selects index 0)"""
    if rotation > 0:
        return math.fmod(rotation, 1.0)
    return math.fmod(rotation, 1.0) + 1.0


def symbol_index(rotation: float, count: int) -> int:
    return int(math.floor(normalize_rotation(rotation) * count)) % count


@dataclass
class StepResult:
    """Output of one propagation pass: label -> symbols, and whether an ender fired"""
    counters: Dict[str, str] = field(default_factory=dict)
    stop: bool = False

    def render_lines(self) -> List[str]:
        return [label + self.counters[label] for label in sorted(self.counters)]


class StepAggregator:
    """``on_turn`` callback collecting counter symbols and ender signals for one step"""

    def __init__(self):
        self.result = StepResult()

    def __call__(self, gear: Gear):
        if gear.kind is GearKind.COUNTER:
            symbol = gear.symbols[symbol_index(gear.rotation, len(gear.symbols))]
            counters = self.result.counters
            counters[gear.key] = counters.get(gear.key, "") + symbol
        elif gear.kind is GearKind.ENDER:
            if abs(gear.rotation) >= 1.0:
                self.result.stop = True


def turn_step(root: Gear, rotation: float) -> StepResult:
    """Drive the genesis gear with *rotation* and collect this step's output"""
    aggregator = StepAggregator()
    propagate(root, rotation, GENESIS_TEETH, aggregator)
    return aggregator.result


# ============================================================================
# ANIMATION LOOP
# ============================================================================

CURSOR_PREVIOUS_LINE = "\x1b[F"
ERASE_TO_END_OF_LINE = "\x1b[K"


@dataclass
class AnimationConfig:
    """Run settings, fixed for the lifetime of an animation"""
    file: Optional[str] = None
    step_size: float = 0.01
    constant_time: bool = False
    duration: float = 1.0  # target seconds per step when constant_time is set
    rotation: float = 0.0


class AnimationState(Enum):
    RUNNING = "running"
    STOPPED = "stopped"


class GearAnimator:
    """
    Turns a gear train step by step, redrawing counter output in place.

    Each step drives the genesis gear with the current rotation. If an ender
    fired the loop stops without drawing that step; otherwise the rotation
    advances by ``step_size``, the sorted counter lines are drawn, the step
    is optionally padded to ``duration`` seconds and the cursor is moved back
    up so the next frame overwrites this one.
    """

    def __init__(self, root: Gear, config: Optional[AnimationConfig] = None,
                 stream: Optional[TextIO] = None,
                 clock: Callable[[], float] = time.perf_counter,
                 sleep: Callable[[float], None] = time.sleep):
        self.root = root
        self.config = config or AnimationConfig()
        self.stream = stream if stream is not None else sys.stdout
        self.clock = clock
        self.sleep = sleep

        self.state = AnimationState.RUNNING
        self.rotation = self.config.rotation
        self.steps = 0
        self.last_frame: List[str] = []

    def step(self) -> bool:
        """Run one iteration; returns False once the animation has stopped"""
        if self.state is AnimationState.STOPPED:
            return False

        start = self.clock()
        result = turn_step(self.root, self.rotation)
        if result.stop:
            self.state = AnimationState.STOPPED
            return False

        self.rotation += self.config.step_size

        lines = result.render_lines()
        for line in lines:
            self.stream.write(f"{line}{ERASE_TO_END_OF_LINE}\n")
        self.stream.flush()

        if self.config.constant_time:
            remaining = self.config.duration - (self.clock() - start)
            if remaining > 0:
                self.sleep(remaining)

        self.stream.write(CURSOR_PREVIOUS_LINE * len(lines))
        self.stream.flush()

        self.last_frame = lines
        self.steps += 1
        return True

    def finish(self):
        """Move the cursor below the last frame so it stays on screen"""
        self.stream.write("\n" * len(self.last_frame))
        self.stream.flush()

    def run(self) -> dict:
        try:
            while self.step():
                pass
        finally:
            self.finish()

        return {
            'success': True,
            'steps': self.steps,
            'final_rotation': self.rotation,
            'last_frame': list(self.last_frame),
        }


# ============================================================================
# SYMBOLIC RATIO ANALYSIS
# ============================================================================

THETA = sp.Symbol("theta", real=True)


def symbolic_rotations(root: Gear, theta: sp.Symbol = THETA) -> Dict[str, sp.Expr]:
    """Exact rotation of every gear as a rational multiple of the driving rotation"""
    equations = {}

    def descend(gear: Gear, path: str, incoming: sp.Expr, incoming_teeth: int):
        rotation = incoming * sp.Rational(incoming_teeth, gear.teeth) * -1
        equations[path] = rotation
        for child_path, child, is_parallel in _children(gear, path):
            descend(child, child_path, -rotation if is_parallel else rotation, gear.teeth)

    descend(root, root.name, theta, GENESIS_TEETH)
    return equations


# ============================================================================
# VISUALIZATION
# ============================================================================

class GearVisualizer:
    """Plots rotation traces recorded by GearboxCompiler.simulate"""

    def plot_rotations(self, trace: dict, show: bool = True, filename: Optional[str] = None):
        """Plot every gear's rotation against the driving rotation"""

        if not trace['success'] or len(trace['theta']) == 0:
            warnings.warn("Cannot plot an empty rotation trace")
            return None

        theta = trace['theta']
        fig, ax = plt.subplots(figsize=(10, 6))
        for path, rotation in zip(trace['paths'], trace['y']):
            ax.plot(theta, rotation, linewidth=1.5, label=path)

        ax.axhline(1.0, color='gray', linestyle='--', alpha=0.5)
        ax.axhline(-1.0, color='gray', linestyle='--', alpha=0.5)
        ax.set_xlabel('driving rotation (revolutions)', fontsize=12)
        ax.set_ylabel('gear rotation (revolutions)', fontsize=12)
        ax.set_title('Gear Train Rotations', fontsize=14, fontweight='bold')
        ax.grid(True, alpha=0.3)
        ax.legend(fontsize=9)
        fig.tight_layout()

        if filename:
            fig.savefig(filename)
        if show:
            plt.show()
        return fig


# ============================================================================
# GEARBOX COMPILER
# ============================================================================

class GearboxCompiler:
    """
    Compiles gear source and offers the analyses built on the resulting tree:
    exact ratio equations, termination estimates, rotation traces and the
    terminal animation itself.
    """

    def __init__(self):
        self.source = ""
        self.root: Optional[Gear] = None
        self.equations: Optional[Dict[str, sp.Expr]] = None
        self.trace: Optional[dict] = None
        self.compilation_time = None
        self.visualizer = GearVisualizer()

    def compile_dsl(self, dsl_source: str) -> dict:
        """
        Parse *dsl_source* and derive its ratio equations.

        Returns:
            Compilation result dictionary; on a syntax error it carries the
            message, the formatted diagnostic and the error position.
        """
        start_time = time.time()
        self.source = dsl_source

        try:
            root = parse_gearbox(dsl_source)
        except GearSyntaxError as e:
            return {
                'success': False,
                'error': str(e),
                'diagnostic': format_syntax_error(e, dsl_source),
                'position': e.position,
                'compilation_time': time.time() - start_time,
            }

        self.root = root
        self.trace = None
        self.equations = symbolic_rotations(root)
        self.compilation_time = time.time() - start_time

        return {
            'success': True,
            'root': root,
            'paths': list(self.equations),
            'gear_count': len(self.equations),
            'compilation_time': self.compilation_time,
        }

    def _require_root(self) -> Gear:
        if self.root is None:
            raise RuntimeError("No gear train compiled yet")
        return self.root

    def derive_equations(self) -> Dict[str, sp.Expr]:
        self.equations = symbolic_rotations(self._require_root())
        return self.equations

    def print_equations(self):
        """Print each gear's rotation in terms of the driving rotation"""
        if self.equations is None:
            print("No equations derived yet.")
            return

        print(f"\n{'='*70}")
        print("Gear Rotations")
        print(f"{'='*70}\n")
        for path, rotation in self.equations.items():
            print(f"{path} = {rotation}")
        print(f"\n{'='*70}\n")

    def termination_rotation(self) -> Dict[str, List[sp.Expr]]:
        """Driving rotations at which each ender's rotation reaches exactly one revolution"""
        root = self._require_root()
        equations = self.equations or self.derive_equations()
        thresholds = {}
        for path, gear in walk(root):
            if gear.kind is GearKind.ENDER:
                rotation = equations[path]
                solutions = sp.solve(sp.Eq(rotation, 1), THETA) + sp.solve(sp.Eq(rotation, -1), THETA)
                thresholds[path] = sorted(solutions)
        return thresholds

    def estimate_steps(self, config: Optional[AnimationConfig] = None) -> Optional[int]:
        """
        Predict how many frames are drawn before an ender fires.

        The prediction uses exact ratios, so it can be off by one step when
        the step size is not exactly representable as a float.
        """
        config = config or AnimationConfig()
        start, step = config.rotation, config.step_size
        estimates = []

        for solutions in self.termination_rotation().values():
            limit = float(max(solutions))
            if abs(start) >= limit:
                estimates.append(0)
            elif step > 0:
                estimates.append(math.ceil((limit - start) / step))
            elif step < 0:
                estimates.append(math.ceil((start + limit) / -step))

        if not estimates:
            warnings.warn("No ender reaches a full revolution with this configuration; the animation runs until interrupted")
            return None
        return min(estimates)

    def simulate(self, steps: int, config: Optional[AnimationConfig] = None) -> dict:
        """
        Run up to *steps* propagation passes without drawing anything.

        The step on which an ender fires is recorded in ``theta``/``y`` but
        produces no frame, matching the animation.
        """
        root = self._require_root()
        config = config or AnimationConfig()
        gears = list(walk(root))

        theta = np.empty(steps, dtype=float)
        y = np.empty((len(gears), steps), dtype=float)
        frames = []
        rotation = config.rotation
        recorded = 0
        stopped = False

        for index in range(steps):
            result = turn_step(root, rotation)
            theta[index] = rotation
            y[:, index] = [gear.rotation for _, gear in gears]
            recorded = index + 1
            if result.stop:
                stopped = True
                break
            frames.append(result.render_lines())
            rotation += config.step_size

        self.trace = {
            'success': True,
            'paths': [path for path, _ in gears],
            'theta': theta[:recorded],
            'y': y[:, :recorded],
            'stopped': stopped,
            'frames': frames,
        }
        return self.trace

    def animate(self, config: Optional[AnimationConfig] = None,
                stream: Optional[TextIO] = None) -> dict:
        return GearAnimator(self._require_root(), config, stream).run()

    def plot_rotations(self, show: bool = True, filename: Optional[str] = None):
        if self.trace is None:
            raise RuntimeError("No rotation trace available; call simulate() first")
        return self.visualizer.plot_rotations(self.trace, show=show, filename=filename)

    def get_info(self) -> dict:
        root = self._require_root()
        kinds = [gear.kind for _, gear in walk(root)]
        return {
            'gear_count': len(kinds),
            'rotators': kinds.count(GearKind.ROTATOR),
            'counters': kinds.count(GearKind.COUNTER),
            'enders': kinds.count(GearKind.ENDER),
            'labels': sorted({gear.key for _, gear in walk(root) if gear.kind is GearKind.COUNTER}),
            'compilation_time': self.compilation_time,
        }


# ============================================================================
# EXAMPLE GEAR TRAINS
# ============================================================================

def example_spinner() -> str:
    """Example: Single spinning counter"""
    return r"""
; one counter, four frames per revolution
c 1 "|/-\\" e 4
"""


def example_countdown() -> str:
    """Example: Multi-character symbols"""
    return r"""
c 1 {"3", "2", "1", "go!"} l "countdown: " e 1
"""


def example_odometer() -> str:
    """Example: Digit wheels chained through idlers"""
    return r"""
; an idler between two wheels keeps them turning the same way
c 1 "0123456789" l "ones "
g 1
c 10 "0123456789" l "tens "
g 1
e 100
"""


def example_clock() -> str:
    """Example: Parallel hands meshing off one driver"""
    return r"""
g 1 [
    c 1 "0123456789" l "seconds ",
    c 6 "012345" l "tens    ",
    c 60 "0123456789" l "minutes "
] e 60
"""


EXAMPLES = {
    'spinner': example_spinner,
    'countdown': example_countdown,
    'odometer': example_odometer,
    'clock': example_clock,
}


def run_example(example_name: str = "spinner", config: Optional[AnimationConfig] = None,
                stream: Optional[TextIO] = None) -> dict:
    """
    Compile and animate a built-in example gear train

    Returns:
        Dictionary with the compiler and the animation result
    """
    if example_name not in EXAMPLES:
        raise ValueError(f"Unknown example: {example_name}. Choose from {list(EXAMPLES.keys())}")

    compiler = GearboxCompiler()
    result = compiler.compile_dsl(EXAMPLES[example_name]())
    if not result['success']:
        raise RuntimeError(f"Built-in example {example_name} failed to compile: {result['error']}")

    return {
        'compiler': compiler,
        'animation': compiler.animate(config, stream),
    }


# ============================================================================
# VALIDATION
# ============================================================================

class GearboxValidator:
    """Cross-check numeric propagation against the exact ratio equations"""

    @staticmethod
    def validate_ratios(compiler: GearboxCompiler, samples: Optional[np.ndarray] = None,
                        tolerance: float = 1e-9) -> bool:
        root = compiler._require_root()
        equations = compiler.equations or compiler.derive_equations()
        if samples is None:
            samples = np.linspace(-2.0, 2.0, 17)

        functions = {path: sp.lambdify(THETA, expr, 'numpy') for path, expr in equations.items()}
        error = 0.0
        for rotation in samples:
            propagate(root, float(rotation))
            for path, gear in walk(root):
                error = max(error, abs(gear.rotation - float(functions[path](rotation))))

        passed = error < tolerance
        print(f"\n{'='*50}")
        print("Gear Ratio Validation")
        print(f"{'='*50}")
        print(f"  Gears: {len(equations)}")
        print(f"  Samples: {len(samples)}")
        print(f"  Max absolute error: {error:.3e}")
        print(f"  Tolerance: {tolerance}")
        print(f"  Status: {'✓ PASSED' if passed else '✗ FAILED'}")
        print(f"{'='*50}\n")

        return passed


# ============================================================================
# COMMAND LINE INTERFACE
# ============================================================================

def main(argv: Optional[List[str]] = None) -> int:
    """Command line interface for GearboxDSL"""
    import argparse

    parser = argparse.ArgumentParser(
        prog='gearbox-dsl',
        description='GearboxDSL v0.1.0 - Animated gear trains in the terminal',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Animate a gear file, one step every 50 ms
  gearbox-dsl clock.gear --step-size 0.05 --constant-time --duration 0.05

  # Show exact ratios and plot 500 steps of rotation
  gearbox-dsl clock.gear --equations --plot rotations.png --trace-steps 500

  # Run a built-in example
  gearbox-dsl --example odometer
        """
    )

    parser.add_argument('file', nargs='?', help='Gear source file')
    parser.add_argument('-s', '--step-size', type=float, default=0.01,
                        help='Rotation added to the genesis gear per step (default: 0.01)')
    parser.add_argument('-c', '--constant-time', action='store_true',
                        help='Pace steps to --duration seconds each')
    parser.add_argument('-d', '--duration', type=float, default=1.0,
                        help='Target seconds per step with --constant-time (default: 1.0)')
    parser.add_argument('-r', '--rotation', type=float, default=0.0,
                        help='Initial rotation of the genesis gear (default: 0.0)')
    parser.add_argument('--example', type=str, choices=list(EXAMPLES.keys()),
                        help='Run a built-in example gear train')
    parser.add_argument('--equations', action='store_true', help='Print exact gear rotation equations')
    parser.add_argument('--plot', nargs='?', const='', metavar='PATH',
                        help='Plot rotations instead of animating (saved to PATH if given)')
    parser.add_argument('--trace-steps', type=int, default=1000,
                        help='Maximum steps recorded for --plot (default: 1000)')
    parser.add_argument('--validate', action='store_true', help='Check numeric propagation against exact ratios')

    args = parser.parse_args(argv)

    for option, value in (('--step-size', args.step_size), ('--duration', args.duration),
                          ('--rotation', args.rotation)):
        if not math.isfinite(value):
            parser.error(f"argument {option}: must be a finite number, got {value}")

    config = AnimationConfig(
        file=args.file,
        step_size=args.step_size,
        constant_time=args.constant_time,
        duration=args.duration,
        rotation=args.rotation,
    )

    if args.example:
        dsl_code = EXAMPLES[args.example]()
    elif args.file:
        try:
            with open(args.file, 'r', encoding='utf-8') as f:
                dsl_code = f.read()
        except OSError as e:
            print(f"Error: cannot read '{args.file}': {e.strerror}", file=sys.stderr)
            return 1
    else:
        parser.print_help()
        return 0

    compiler = GearboxCompiler()
    result = compiler.compile_dsl(dsl_code)
    if not result['success']:
        print(f"Compilation failed: {result['diagnostic']}", file=sys.stderr)
        return 1

    if args.equations:
        compiler.print_equations()

    if args.validate and not GearboxValidator.validate_ratios(compiler):
        return 1

    if args.plot is not None:
        compiler.simulate(args.trace_steps, config)
        compiler.plot_rotations(show=not args.plot, filename=args.plot or None)
        return 0

    if args.equations or args.validate:
        return 0

    try:
        compiler.animate(config)
    except KeyboardInterrupt:
        pass
    return 0


# ============================================================================
# MODULE EXPORTS
# ============================================================================

__all__ = [
    'AnimationConfig',
    'AnimationState',
    'Gear',
    'GearAnimator',
    'GearboxCompiler',
    'GearboxParser',
    'GearboxValidator',
    'GearConstructionError',
    'GearKind',
    'GearSyntaxError',
    'GearVisualizer',
    'StepResult',
    'format_syntax_error',
    'normalize_rotation',
    'parse_gearbox',
    'propagate',
    'run_example',
    'symbol_index',
    'symbolic_rotations',
    'tokenize',
    'turn_step',
    'walk',
]


if __name__ == '__main__':
    sys.exit(main())
