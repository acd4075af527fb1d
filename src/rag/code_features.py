# src/rag/code_features.py - v1
"""Regex-based code feature extraction for blueprints.

Language detection, size and comment metrics, a cyclomatic complexity
estimate, imports and design-pattern hints, plus the naming/comment/
complexity report behind ``analyze_code_patterns``.
"""

from __future__ import annotations

import re

from blueprints_rag.rag.models import (
    ClassPatterns,
    CodeComplexity,
    CodeFeatures,
    CodePatterns,
    CommentAnalysis,
    FunctionPatterns,
    VariablePatterns,
)

_LANGUAGE_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("python", (r"def\s+\w+.*:", r"import\s+\w+", r"from\s+\w+\s+import")),
    ("javascript", (r"function\s+\w+", r"const\s+\w+\s*=", r"let\s+\w+\s*=")),
    ("ruby", (r"def\s+\w+", r"class\s+\w+", r"require\s+['\"][\w/]+['\"]")),
    ("c", (r"#include\s*<", r"int\s+main\s*\(")),
)

_COMMENT_PREFIXES = ("#", "//", "/*", "*")
_DECISION_RE = re.compile(r"\b(?:if|elif|else|for|while|case|when)\s")
_BOOLEAN_RE = re.compile(r"&&|\|\||\band\s|\bor\s")
_TERNARY_RE = re.compile(r"\?.*:")
_FUNCTION_RE = re.compile(r"def\s+\w+|function\s+\w+|class\s+\w+")

_SNAKE_RE = re.compile(r"^[a-z]+(?:_[a-z]+)*$")
_CAMEL_RE = re.compile(r"^[a-z]+(?:[A-Z][a-z]*)*$")


def detect_language(code: str) -> str:
    if not code:
        return "unknown"
    for language, patterns in _LANGUAGE_RULES:
        if any(re.search(p, code) for p in patterns):
            return language
    return "unknown"


def comment_lines(code: str) -> list[str]:
    return [line for line in code.splitlines() if line.strip().startswith(_COMMENT_PREFIXES)]


def comment_ratio(code: str) -> float:
    lines = code.splitlines()
    if not lines:
        return 0.0
    return len(comment_lines(code)) / len(lines)


def cyclomatic_complexity(code: str) -> int:
    """1 + decision points + boolean operators + ternaries."""
    return (
        1
        + len(_DECISION_RE.findall(code))
        + len(_BOOLEAN_RE.findall(code))
        + len(_TERNARY_RE.findall(code))
    )


def extract_imports(code: str) -> list[str]:
    found: list[str] = []
    for module, names in re.findall(r"^(?:from\s+(\S+)\s+)?import\s+(.+)$", code, re.MULTILINE):
        found.extend(x for x in (module, names.strip()) if x)
    found.extend(re.findall(r"require\s+['\"](.+?)['\"]", code))
    found.extend(re.findall(r"import\s+.*?from\s+['\"](.+?)['\"]", code))
    return list(dict.fromkeys(found))


def detect_design_patterns(code: str) -> list[str]:
    patterns = []
    if "@@instance" in code or "getInstance" in code or "_instance" in code:
        patterns.append("singleton")
    if re.search(r"create\w*\(", code, re.IGNORECASE) or "Factory" in code:
        patterns.append("factory")
    if "notify" in code or "Observer" in code:
        patterns.append("observer")
    if "Strategy" in code or re.search(r"execute\w*\(", code, re.IGNORECASE):
        patterns.append("strategy")
    return patterns


def extract_code_features(code: str) -> CodeFeatures:
    return CodeFeatures(
        language=detect_language(code),
        line_count=len(code.splitlines()),
        function_count=len(_FUNCTION_RE.findall(code)),
        comment_ratio=comment_ratio(code),
        complexity_score=cyclomatic_complexity(code),
        imports=extract_imports(code),
        patterns=detect_design_patterns(code),
    )


def complexity_band(score: int) -> str:
    if score <= 3:
        return "simple"
    if score <= 7:
        return "moderate"
    return "complex"


# === PATTERN REPORT ===


def naming_convention(names: list[str]) -> str:
    if not names:
        return "unknown"
    snake = sum(1 for n in names if _SNAKE_RE.match(n))
    camel = sum(1 for n in names if _CAMEL_RE.match(n))
    if snake > camel:
        return "snake_case"
    if camel > snake:
        return "camelCase"
    return "mixed"


def analyze_patterns(code: str, lexical_diversity: float = 0.0) -> CodePatterns:
    """Function/class/variable naming, comments and complexity of ``code``.

    ``lexical_diversity`` comes from the semantic processor run over the
    code and feeds the linguistic complexity component.
    """
    functions = [a or b for a, b in re.findall(r"def\s+(\w+)|function\s+(\w+)", code)]
    classes = re.findall(r"class\s+(\w+)", code)
    inheritance = re.findall(r"class\s+\w+\s*(?:<\s*|\(\s*)(\w+)", code)
    variables = list(dict.fromkeys(re.findall(r"(\w+)\s*=(?!=)", code)))
    comments = comment_lines(code)
    cyclomatic = cyclomatic_complexity(code)

    return CodePatterns(
        function_patterns=FunctionPatterns(
            count=len(functions),
            names=functions,
            avg_name_length=(
                sum(len(f) for f in functions) / len(functions) if functions else 0.0
            ),
        ),
        class_patterns=ClassPatterns(count=len(classes), names=classes, inheritance=inheritance),
        variable_patterns=VariablePatterns(
            count=len(variables), naming_convention=naming_convention(variables)
        ),
        comment_analysis=CommentAnalysis(
            count=len(comments),
            avg_length=sum(len(c) for c in comments) / len(comments) if comments else 0.0,
            has_docstrings='"""' in code or "'''" in code,
        ),
        complexity_metrics=CodeComplexity(
            cyclomatic=cyclomatic,
            linguistic=lexical_diversity,
            combined=(cyclomatic + lexical_diversity * 10) / 2.0,
        ),
    )


def pattern_keys(patterns: CodePatterns) -> list[str]:
    """Ordered pattern-index keys for named functions and classes."""
    keys = [f"function_patterns_{n}" for n in patterns.function_patterns.names]
    keys += [f"class_patterns_{n}" for n in patterns.class_patterns.names]
    return keys
