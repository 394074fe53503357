"""
Error handling for the Logo parser and interpreter with detailed error messages
Pure functional style - exception classes only at the boundary
"""

from typing import List, Optional, Dict
from pyparsing import ParseException
import re


# ============================================================================
# DATA STRUCTURES (Immutable Dictionaries)
# ============================================================================

def make_parse_error(
    message: str,
    location: int,
    line: int,
    column: int,
    expected: Optional[List[str]] = None,
    got: Optional[str] = None,
    context: Optional[str] = None,
    suggestions: Optional[List[str]] = None
) -> Dict:
    """Create an immutable parse error structure"""
    return {
        'message': message,
        'location': location,
        'line': line,
        'column': column,
        'expected': expected or [],
        'got': got,
        'context': context,
        'suggestions': suggestions or []
    }


def format_parse_error(error: Dict) -> str:
    """Render an error dict as a multi-line report"""
    report = [
        f"Parse error at line {error['line']}, column {error['column']}:",
        f"  {error['message']}",
    ]
    if error['expected']:
        report.append(f"  Expected: {', '.join(error['expected'])}")
    if error['got']:
        report.append(f"  Got: {error['got']}")
    if error['context']:
        report.append(error['context'])
    report.extend(f"  hint: {suggestion}" for suggestion in error['suggestions'])
    return '\n'.join(report) + '\n'


# ============================================================================
# PURE FUNCTIONS
# ============================================================================

def token_width(source_text: str, location: int) -> int:
    """Length of the Logo token starting at location (at least 1)"""
    match = re.match(r'[A-Za-z]+|:[A-Za-z]*|\d+|\S', source_text[location:])
    return len(match.group(0)) if match else 1


def get_context_lines(source_text: str, line_num: int, col_num: int,
                      width: int = 1, context_lines: int = 1) -> str:
    """Source lines around the error with the failing token underlined"""
    lines = source_text.split('\n')
    first = max(0, line_num - context_lines - 1)
    last = min(len(lines), line_num + context_lines)

    rendered = []
    for index in range(first, last):
        rendered.append(f"{index + 1:4d} | {lines[index]}")
        if index == line_num - 1:
            marker = '^' + '~' * (width - 1)
            rendered.append(f"     | {' ' * (col_num - 1)}{marker}")

    return '\n'.join(rendered)


def extract_got(exc: ParseException) -> str:
    """Describe what was actually found at the error location"""
    remaining = exc.pstr[exc.loc:]
    if not remaining.strip():
        return "end of input"
    snippet = remaining.split('\n')[0][:12].strip()
    return f"'{snippet}'" if snippet else "end of line"


def generate_suggestions(source_text: str, got: str, reserved_words) -> List[str]:
    """Generate helpful suggestions based on the error"""
    suggestions = []
    word = got.strip("'").split(' ')[0] if got.startswith("'") else ""
    bare = word.rstrip('0123456789')

    for match in re.finditer(r'\bto\s+([A-Za-z]+)', source_text):
        if match.group(1) in reserved_words:
            suggestions.append(f"'{match.group(1)}' is a reserved word and cannot name a procedure")

    if bare != word and bare in reserved_words:
        suggestions.append(f"Separate the command from its operand: '{bare} {word[len(bare):]}'")

    words = re.findall(r'[A-Za-z]+', source_text)
    if words.count("to") > words.count("end"):
        suggestions.append("Every 'to' definition must be closed with 'end'")
    elif word == "end":
        suggestions.append("'end' without a matching 'to'")

    if source_text.count('[') != source_text.count(']'):
        suggestions.append("Check that every '[' has a matching ']'")

    return suggestions


def enhance_parse_exception_dict(exc: ParseException, reserved_words=()) -> Dict:
    """Convert a pyparsing exception located in Logo source to an error dict"""
    source_text = exc.pstr
    line_num = exc.lineno
    col_num = exc.column

    width = token_width(source_text, exc.loc)
    context = get_context_lines(source_text, line_num, col_num, width)
    got = extract_got(exc)
    suggestions = generate_suggestions(source_text, got, reserved_words)

    return make_parse_error(
        message=exc.msg,
        location=exc.loc,
        line=line_num,
        column=col_num,
        expected=["a statement"],
        got=got,
        context=context,
        suggestions=suggestions
    )


# ============================================================================
# EXCEPTION CLASSES
# ============================================================================

class LogoParseError(Exception):
    """Raised when Logo source cannot be parsed"""
    def __init__(self, message: str, location: int = 0, line: int = 0, column: int = 0,
                 expected: Optional[List[str]] = None, got: Optional[str] = None,
                 context: Optional[str] = None, suggestions: Optional[List[str]] = None):
        self.message = message
        self.location = location
        self.line = line
        self.column = column
        self.expected = expected or []
        self.got = got
        self.context = context
        self.suggestions = suggestions or []
        super().__init__(message)

    def __str__(self) -> str:
        if not self.line:
            return self.message
        error_dict = make_parse_error(
            self.message, self.location, self.line, self.column,
            self.expected, self.got, self.context, self.suggestions
        )
        return format_parse_error(error_dict)


class LogoRuntimeError(Exception):
    """Raised when evaluation cannot continue (undefined procedure, division by zero, limits)"""
    def __init__(self, message: str, node=None):
        self.message = message
        self.node = node
        super().__init__(message)


class LogoErrorHandler:
    """Builds located parse errors for one source text"""
    def __init__(self, source_text: str, filename: str = "<input>", reserved_words=()):
        self.source_text = source_text
        self.filename = filename
        self.reserved_words = tuple(reserved_words)

    def error_at(self, location: int, message: str) -> LogoParseError:
        """Create a LogoParseError for a character offset in the source"""
        exc = ParseException(self.source_text, location, message)
        return self.enhance_parse_exception(exc)

    def enhance_parse_exception(self, exc: ParseException) -> LogoParseError:
        error_dict = enhance_parse_exception_dict(exc, self.reserved_words)
        return LogoParseError(
            message=f"{self.filename}: {error_dict['message']}",
            location=error_dict['location'],
            line=error_dict['line'],
            column=error_dict['column'],
            expected=error_dict['expected'],
            got=error_dict['got'],
            context=error_dict['context'],
            suggestions=error_dict['suggestions']
        )
