"""Built-in boundary detectors."""

from __future__ import annotations

import re

from .base import RegexBoundaryDetector

# ---------------------------------------------------------------------------
# PHP (Laravel / Symfony controllers, resources and form requests)
# ---------------------------------------------------------------------------


class PhpDetector(RegexBoundaryDetector):
    """Declarations in PHP classes, interfaces, traits and enums."""

    name = "php"
    suffixes = (".php",)

    type_pattern = re.compile(
        r"(?:(?:abstract|final|readonly)\s+)*(?:class|interface|trait|enum)\s+(?P<name>[A-Za-z_]\w*)"
    )
    method_pattern = re.compile(
        r"(?:(?:public|protected|private|static|abstract|final)\s+)*function\s+&?(?P<name>[A-Za-z_]\w*)\s*\("
    )
    field_pattern = re.compile(
        r"(?:(?:public|protected|private|var|static|readonly)\s+)+"
        r"(?:(?P<type>\??[A-Za-z_\\][\w\\|]*)\s+)?\$(?P<name>[A-Za-z_]\w*)"
    )
    prefix_pattern = re.compile(r"#\[")


# ---------------------------------------------------------------------------
# Java (Spring controllers and DTOs)
# ---------------------------------------------------------------------------

_JAVA_MODIFIERS = r"(?:(?:public|protected|private|static|final|abstract|synchronized|default|transient|volatile)\s+)*"


class JavaDetector(RegexBoundaryDetector):
    """Declarations in Java classes, interfaces, enums and records."""

    name = "java"
    suffixes = (".java",)

    type_pattern = re.compile(
        _JAVA_MODIFIERS + r"(?:class|interface|enum|record)\s+(?P<name>[A-Za-z_]\w*)"
    )
    method_pattern = re.compile(
        _JAVA_MODIFIERS
        + r"(?:<[^>\n]+>\s+)?(?:[\w.<>\[\]?, ]+?\s+)?(?P<name>[A-Za-z_]\w*)\s*\("
    )
    field_pattern = re.compile(
        _JAVA_MODIFIERS + r"(?P<type>[\w.<>\[\]?, ]+?)\s+(?P<name>[A-Za-z_]\w*)\s*[=;]"
    )
    prefix_pattern = re.compile(r"@[A-Za-z_][\w.]*(?:\s*\()?")


# ---------------------------------------------------------------------------
# TypeScript / JavaScript (NestJS / Express handlers and DTO classes)
# ---------------------------------------------------------------------------


class TypeScriptDetector(RegexBoundaryDetector):
    """Declarations in TypeScript and JavaScript classes and interfaces."""

    name = "typescript"
    suffixes = (".ts", ".tsx", ".js", ".jsx", ".mjs")

    type_pattern = re.compile(
        r"(?:export\s+)?(?:default\s+)?(?:abstract\s+)?(?:class|interface)\s+(?P<name>[A-Za-z_$][\w$]*)"
    )
    method_pattern = re.compile(
        r"(?:export\s+)?(?:(?:public|protected|private|static|async|override)\s+)*"
        r"(?:function\s*\*?\s*)?(?P<name>[A-Za-z_$][\w$]*)\s*(?:<[^>\n]*>)?\s*\("
    )
    field_pattern = re.compile(
        r"(?:(?:public|protected|private|static|readonly|declare|override)\s+)*"
        r"(?P<name>[A-Za-z_$][\w$]*)\s*[?!]?\s*(?::\s*(?P<type>[^;=\n]+?))?\s*[;=\n]"
    )
    prefix_pattern = re.compile(r"@[A-Za-z_$][\w$.]*(?:\s*\()?")


__all__ = ["JavaDetector", "PhpDetector", "TypeScriptDetector"]
