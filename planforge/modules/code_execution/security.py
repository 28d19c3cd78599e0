"""Denylist screening of submitted code. Pattern matching only; it is not a sandbox."""
import re
from typing import List

DANGEROUS_PATTERNS = [
    re.compile(r"require\s*\(\s*['\"]fs['\"]\s*\)"),
    re.compile(r"require\s*\(\s*['\"]https?['\"]\s*\)"),
    re.compile(r"require\s*\(\s*['\"]net['\"]\s*\)"),
    re.compile(r"require\s*\(\s*['\"]child_process['\"]\s*\)"),
    re.compile(r"import\s+.*\s+from\s+['\"](fs|https?|net|child_process)['\"]"),
    re.compile(r"process\.exit"),
    re.compile(r"process\.kill"),
    re.compile(r"\bfetch\s*\("),
    re.compile(r"\bexec\s*\("),
    re.compile(r"\bspawn\s*\("),
    re.compile(r"\beval\s*\("),
    re.compile(r"\bFunction\s*\("),
    re.compile(r"\bsetTimeout\s*\("),
    re.compile(r"\bsetInterval\s*\("),
    re.compile(r"\b(import|from)\s+(os|sys|subprocess|socket|urllib|requests)\b"),
    re.compile(r"__import__"),
    re.compile(r"\bopen\s*\("),
]


def find_blocked_patterns(code: str) -> List[str]:
    """Source of every denylisted pattern that occurs in the code."""
    return [pattern.pattern for pattern in DANGEROUS_PATTERNS if pattern.search(code)]
