# tests/unit/rag/test_code_features.py - v1
"""Tests for rag/code_features.py - regex code metrics and pattern report."""

from __future__ import annotations

import pytest

from blueprints_rag.rag.code_features import (
    analyze_patterns,
    complexity_band,
    cyclomatic_complexity,
    detect_design_patterns,
    detect_language,
    extract_code_features,
    extract_imports,
    naming_convention,
    pattern_keys,
)
from fakes import JS_OBSERVER, PYTHON_FACTORY, RUBY_SINGLETON


class TestLanguage:
    @pytest.mark.parametrize(
        ("code", "language"),
        [
            (PYTHON_FACTORY, "python"),
            (JS_OBSERVER, "javascript"),
            (RUBY_SINGLETON, "ruby"),
            ("#include <stdio.h>\nint main() { return 0; }", "c"),
            ("SELECT 1;", "unknown"),
            ("", "unknown"),
        ],
    )
    def test_detect(self, code: str, language: str):
        assert detect_language(code) == language


class TestFeatures:
    def test_python_factory(self):
        features = extract_code_features(PYTHON_FACTORY)
        assert features.language == "python"
        assert features.function_count == 1
        assert features.line_count == 9
        assert features.comment_ratio == pytest.approx(1 / 9)
        assert features.imports == ["json"]
        assert "factory" in features.patterns

    def test_empty_code(self):
        features = extract_code_features("")
        assert features.language == "unknown"
        assert features.line_count == 0
        assert features.comment_ratio == 0.0
        assert features.complexity_score == 1

    def test_cyclomatic_complexity(self):
        assert cyclomatic_complexity("x = 1") == 1
        assert cyclomatic_complexity("if a and b:\n    pass\nelse:\n    pass") == 3
        assert cyclomatic_complexity(PYTHON_FACTORY) == 3

    def test_imports(self):
        code = "from os import path\nimport sys\nrequire 'json'\nimport x from 'lodash'"
        imports = extract_imports(code)
        assert {"os", "path", "sys", "json", "lodash"} <= set(imports)

    def test_design_patterns(self):
        assert detect_design_patterns(RUBY_SINGLETON) == ["singleton"]
        assert "observer" in detect_design_patterns(JS_OBSERVER)
        assert detect_design_patterns("x = 1") == []

    @pytest.mark.parametrize(
        ("score", "band"), [(1, "simple"), (3, "simple"), (4, "moderate"), (7, "moderate"), (8, "complex")]
    )
    def test_complexity_band(self, score: int, band: str):
        assert complexity_band(score) == band


class TestPatternReport:
    def test_python_factory(self):
        report = analyze_patterns(PYTHON_FACTORY, lexical_diversity=0.5)
        assert report.function_patterns.names == ["create_parser"]
        assert report.function_patterns.avg_name_length == len("create_parser")
        assert report.class_patterns.count == 0
        assert report.comment_analysis.count == 1
        assert report.complexity_metrics.cyclomatic == 3
        assert report.complexity_metrics.linguistic == 0.5
        assert report.complexity_metrics.combined == pytest.approx((3 + 5) / 2)
        assert report.error is None

    def test_classes_and_inheritance(self):
        code = "class Parser(Base):\n    pass\nclass Lexer < Scanner\nend"
        report = analyze_patterns(code)
        assert report.class_patterns.names == ["Parser", "Lexer"]
        assert report.class_patterns.inheritance == ["Base", "Scanner"]

    def test_docstrings(self):
        assert analyze_patterns('def f():\n    """Doc."""\n').comment_analysis.has_docstrings

    @pytest.mark.parametrize(
        ("names", "convention"),
        [
            (["user_name", "max_size"], "snake_case"),
            (["userName", "maxSize"], "camelCase"),
            (["user_name", "userName"], "mixed"),
            ([], "unknown"),
        ],
    )
    def test_naming_convention(self, names: list[str], convention: str):
        assert naming_convention(names) == convention

    def test_pattern_keys(self):
        report = analyze_patterns("class Parser:\n    def parse(self):\n        pass")
        assert pattern_keys(report) == ["function_patterns_parse", "class_patterns_Parser"]
