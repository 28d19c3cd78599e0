"""Structured fields from an uploaded RFP document.

Produces the rfpAnalysis object the section drafter reads: title, client,
deadline, budget, requirement lists, scope and deliverables. Labelled
fields are matched in English and Korean ("Client:" / "발주기관:").
"""
import os
import re
from typing import Any, Dict, List, Optional, Tuple

from planforge.modules.proposals.rfp_analyzer import count_mentions

DEFAULT_CLIENT = "Client information not found"
DEFAULT_DEADLINE = "Deadline information not found"
DEFAULT_SCOPE = (
    "Full lifecycle delivery of the web application: design, development, "
    "testing, deployment and operational support"
)

_LINE_VALUE = r"\s*[:：]\s*(.+)"

TITLE_PATTERNS = [
    re.compile(r"project\s+(?:title|name)" + _LINE_VALUE, re.IGNORECASE),
    re.compile(r"프로젝트\s*명?" + _LINE_VALUE),
    re.compile(r"사업\s*명?" + _LINE_VALUE),
    re.compile(r"과제\s*명?" + _LINE_VALUE),
]

CLIENT_PATTERNS = [
    re.compile(r"(?:client|issuing\s+agency|customer)" + _LINE_VALUE, re.IGNORECASE),
    re.compile(r"발주\s*기관?" + _LINE_VALUE),
    re.compile(r"클라이언트" + _LINE_VALUE),
    re.compile(r"의뢰\s*기관?" + _LINE_VALUE),
    re.compile(r"고객사" + _LINE_VALUE),
]

DEADLINE_PATTERNS = [
    re.compile(r"(?:deadline|due\s+date|completion\s+date)" + _LINE_VALUE, re.IGNORECASE),
    re.compile(r"마감\s*일?" + _LINE_VALUE),
    re.compile(r"완료\s*일?" + _LINE_VALUE),
    re.compile(r"납기\s*일?" + _LINE_VALUE),
]
DATE_PATTERN = re.compile(r"\d{4}[-년./]\s?\d{1,2}[-월./]\s?\d{1,2}일?")

_AMOUNT = r"([0-9][0-9,]*)"
BUDGET_RANGE = re.compile(r"(?:budget|예산)\s*[:：]\s*\$?" + _AMOUNT + r"\s*(?:~|-|to)\s*\$?" + _AMOUNT + r"\s*(만원|원|krw|usd)?", re.IGNORECASE)
BUDGET_SINGLE = re.compile(r"(?:budget|예산)\s*[:：]\s*\$?" + _AMOUNT + r"\s*(만원|원|krw|usd)?", re.IGNORECASE)
BUDGET_MANWON = re.compile(_AMOUNT + r"\s*만원")

SCOPE_PATTERN = re.compile(
    r"(?:(?i:scope)|범위|사업\s*내용)\s*[:：](.*?)(?=\n\s*\n|\n[가-힣A-Z\d]|\Z)",
    re.DOTALL,
)

# (label, keywords)
FUNCTIONAL_FEATURES: List[Tuple[str, List[str]]] = [
    ("User management", ["user management", "사용자 관리"]),
    ("Login", ["login", "로그인"]),
    ("Sign-up", ["sign up", "signup", "회원가입"]),
    ("Bulletin board", ["bulletin board", "게시판"]),
    ("Search", ["search", "검색"]),
    ("Payment", ["payment", "결제"]),
    ("Order", ["order", "주문"]),
    ("Administrator", ["admin", "administrator", "관리자"]),
    ("Dashboard", ["dashboard", "대시보드"]),
    ("Reporting", ["report", "리포트"]),
    ("Notification", ["notification", "알림"]),
]

TECHNICAL_FEATURES: List[Tuple[str, List[str]]] = [
    ("React framework", ["react"]),
    ("Vue.js framework", ["vue"]),
    ("Node.js backend", ["node", "node.js"]),
    ("MySQL database", ["mysql"]),
    ("PostgreSQL database", ["postgresql"]),
    ("RESTful API", ["api"]),
    ("AWS cloud infrastructure", ["aws"]),
]

DESIGN_FEATURES: List[Tuple[str, List[str]]] = [
    ("Design", ["design", "디자인"]),
    ("Brand", ["brand", "브랜드"]),
    ("Logo", ["logo", "로고"]),
    ("UI", ["ui"]),
    ("UX", ["ux"]),
    ("Usability", ["usability", "사용성"]),
    ("Accessibility", ["accessibility", "접근성"]),
]

DELIVERABLES: List[Tuple[str, List[str]]] = [
    ("Source code", ["source code", "소스코드"]),
    ("Documentation", ["documentation", "문서"]),
    ("User manual", ["manual", "매뉴얼"]),
    ("Design specification", ["design specification", "설계서"]),
    ("Test report", ["test", "테스트"]),
    ("Training", ["training", "교육"]),
]

DEFAULT_FUNCTIONAL = [
    "User authentication and permission management",
    "Data CRUD features",
    "Search and filtering",
    "Responsive web design",
]
DEFAULT_TECHNICAL = [
    "Web standards and cross-browser support",
    "Security hardening (HTTPS, data encryption)",
    "Performance optimization",
    "Mobile responsive support",
]
DEFAULT_DESIGN = [
    "Intuitive user interface",
    "Consistent design system",
    "Mobile-first responsive design",
    "Web accessibility (WCAG) compliance",
]
DEFAULT_DELIVERABLES = [
    "Completed web application",
    "Source code and technical documentation",
    "User manual",
    "Operations guide",
    "Test results report",
]
RISK_FACTORS = [
    "Schedule delays from changing requirements",
    "Technical constraints of external API integrations",
    "Browser compatibility issues",
    "Data migration complexity",
    "Performance optimization requirements",
]
KEY_POINTS = [
    "Focus on user experience (UX)",
    "Scalable architecture",
    "Stronger security and privacy protection",
    "Ease of maintenance",
    "Schedule and quality management",
]


def _first_line(value: str) -> str:
    return value.strip().splitlines()[0].strip() if value.strip() else ""


def _labelled_value(content: str, patterns: List[re.Pattern]) -> Optional[str]:
    for pattern in patterns:
        match = pattern.search(content)
        if match:
            value = _first_line(match.group(1))
            if value:
                return value
    return None


def _mentioned(content: str, keywords: List[str]) -> bool:
    lowered = content.lower()
    return any(count_mentions(lowered, keyword.lower()) for keyword in keywords)


def _features(content: str, features: List[Tuple[str, List[str]]], suffix: str, default: List[str]) -> List[str]:
    found = [f"{label}{suffix}" for label, keywords in features if _mentioned(content, keywords)]
    return found or list(default)


def _amount(raw: str, unit: Optional[str]) -> int:
    value = int(raw.replace(",", ""))
    return value * 10000 if unit == "만원" else value


def _currency(content: str, unit: Optional[str]) -> str:
    if (unit and unit.lower() == "usd") or "$" in content:
        return "USD"
    return "KRW"


def extract_title(content: str, file_name: str) -> str:
    title = _labelled_value(content, TITLE_PATTERNS)
    if title:
        return title
    return os.path.splitext(file_name)[0].replace("_", " ")


def extract_client(content: str) -> str:
    return _labelled_value(content, CLIENT_PATTERNS) or DEFAULT_CLIENT


def extract_deadline(content: str) -> str:
    labelled = _labelled_value(content, DEADLINE_PATTERNS)
    if labelled:
        return labelled
    match = DATE_PATTERN.search(content)
    return match.group(0) if match else DEFAULT_DEADLINE


def extract_budget(content: str) -> Dict[str, Any]:
    """Budget range or floor; amounts in 만원 are converted to won"""
    match = BUDGET_RANGE.search(content)
    if match:
        unit = match.group(3)
        return {
            "min": _amount(match.group(1), unit),
            "max": _amount(match.group(2), unit),
            "currency": _currency(match.group(0), unit),
        }
    match = BUDGET_SINGLE.search(content) or BUDGET_MANWON.search(content)
    if match:
        unit = match.group(2) if match.re is BUDGET_SINGLE else "만원"
        return {"min": _amount(match.group(1), unit), "currency": _currency(match.group(0), unit)}
    return {"currency": "KRW"}


def extract_scope(content: str) -> str:
    match = SCOPE_PATTERN.search(content)
    if match and match.group(1).strip():
        return match.group(1).strip()
    return DEFAULT_SCOPE


def extract_rfp_document(content: str, file_name: str) -> Dict[str, Any]:
    return {
        "projectTitle": extract_title(content, file_name),
        "client": extract_client(content),
        "deadline": extract_deadline(content),
        "budget": extract_budget(content),
        "requirements": {
            "functional": _features(content, FUNCTIONAL_FEATURES, " feature", DEFAULT_FUNCTIONAL),
            "technical": _features(content, TECHNICAL_FEATURES, "", DEFAULT_TECHNICAL),
            "design": _features(content, DESIGN_FEATURES, " guideline compliance", DEFAULT_DESIGN),
        },
        "scope": extract_scope(content),
        "deliverables": _features(content, DELIVERABLES, " delivered", DEFAULT_DELIVERABLES),
        "riskFactors": list(RISK_FACTORS),
        "keyPoints": list(KEY_POINTS),
    }
