"""Keyword-driven requirement extraction for RFP text.

Each topic has an English keyword plus the Korean term used in local RFPs.
Scores are derived from the topic name so the same RFP always yields the
same analysis.
"""
import re
import zlib
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

MAX_REQUIREMENTS = 10
REQUIREMENT_TYPES = ["functional", "non_functional", "business", "technical", "constraint"]
PRIORITIES = ["critical", "high", "medium", "low"]

# type -> [(topic, [keywords])]
TOPICS: Dict[str, List[tuple]] = {
    "functional": [
        ("login", ["login", "sign in", "로그인"]),
        ("signup", ["sign up", "registration", "회원가입"]),
        ("payment", ["payment", "checkout", "결제"]),
        ("order", ["order", "주문"]),
        ("product", ["product", "catalog", "상품"]),
        ("cart", ["cart", "장바구니"]),
        ("search", ["search", "검색"]),
        ("board", ["bulletin board", "forum", "게시판"]),
        ("comment", ["comment", "댓글"]),
        ("review", ["review", "리뷰"]),
    ],
    "non_functional": [
        ("performance", ["performance", "성능"]),
        ("security", ["security", "보안"]),
        ("scalability", ["scalability", "scalable", "확장성"]),
        ("accessibility", ["accessibility", "접근성"]),
        ("responsive", ["responsive", "반응형"]),
        ("compatibility", ["compatibility", "호환성"]),
        ("availability", ["availability", "가용성"]),
        ("maintainability", ["maintainability", "maintenance", "유지보수"]),
    ],
    "business": [
        ("revenue", ["revenue", "sales", "매출"]),
        ("customer", ["customer", "고객"]),
        ("brand", ["brand", "브랜드"]),
        ("marketing", ["marketing", "마케팅"]),
        ("analytics", ["analytics", "analysis", "분석"]),
        ("reporting", ["report", "리포트"]),
        ("dashboard", ["dashboard", "대시보드"]),
        ("kpi", ["kpi"]),
    ],
    "technical": [
        ("api", ["api"]),
        ("database", ["database", "데이터베이스"]),
        ("cloud", ["cloud", "클라우드"]),
        ("deployment", ["deployment", "deploy", "배포"]),
        ("monitoring", ["monitoring", "모니터링"]),
        ("logging", ["logging", "log", "logs"]),
        ("ssl", ["ssl", "https"]),
        ("backup", ["backup", "백업"]),
    ],
    "constraint": [
        ("budget", ["budget", "예산"]),
        ("schedule", ["schedule", "deadline", "일정"]),
        ("resources", ["resource", "리소스"]),
        ("limitation", ["constraint", "제약", "한계"]),
        ("regulation", ["regulation", "compliance", "규정"]),
        ("legal", ["legal", "법적"]),
    ],
}

TITLES = {
    "login": "User login system",
    "signup": "Member registration and verification",
    "payment": "Online payment processing",
    "order": "Order management system",
    "product": "Product catalog management",
    "cart": "Shopping cart",
    "search": "Unified search",
    "board": "Community board",
    "comment": "Comments and replies",
    "review": "Product reviews",
    "performance": "System performance optimization",
    "security": "Security hardening",
    "scalability": "Scalable architecture",
    "accessibility": "Web accessibility compliance",
    "responsive": "Responsive web design",
    "compatibility": "Cross-browser compatibility",
    "availability": "High availability",
    "maintainability": "Maintainability improvements",
    "revenue": "Revenue analytics dashboard",
    "customer": "Customer management",
    "brand": "Brand identity implementation",
    "marketing": "Marketing automation",
    "analytics": "Data analytics platform",
    "reporting": "Reporting system",
    "dashboard": "Executive dashboard",
    "kpi": "KPI monitoring",
    "api": "RESTful API design",
    "database": "Database optimization",
    "cloud": "Cloud infrastructure",
    "deployment": "CI/CD pipeline",
    "monitoring": "System monitoring",
    "logging": "Log management",
    "ssl": "SSL certificate rollout",
    "backup": "Data backup",
    "budget": "Budget constraints",
    "schedule": "Schedule constraints",
    "resources": "Resource allocation limits",
    "limitation": "Technical constraints",
    "regulation": "Regulatory compliance",
    "legal": "Legal requirements",
}

DESCRIPTIONS = {
    "login": "Users sign in with email and password or a social account.",
    "signup": "New users create an account and confirm it by email verification.",
    "payment": "Secure payment processing supporting cards, bank transfer and simple-pay providers.",
    "order": "Customers place orders and administrators process them.",
    "performance": "Pages load within 3 seconds with 1000 concurrent users supported.",
    "security": "HTTPS, token authentication and protection against SQL injection.",
    "scalability": "Architecture that scales horizontally and vertically with traffic growth.",
}

CATEGORIES = {
    "login": "Authentication",
    "signup": "User management",
    "payment": "Payments",
    "order": "Order management",
    "product": "Product management",
    "cart": "Shopping",
    "search": "Search",
    "board": "Community",
    "performance": "NFR",
    "security": "Security",
    "api": "Integration",
}

ACCEPTANCE_CRITERIA = {
    "login": ["Email and password are validated", "Failed logins show an error message", "Successful logins issue a token"],
    "payment": ["Payment gateway integrated", "Success and failure are handled", "Payment history is stored"],
    "product": ["Product CRUD", "Image upload", "Inventory tracking"],
    "performance": ["Page load under 3 seconds", "1000 concurrent users", "Server response under 1 second"],
}

CRITICAL_TOPICS = {"payment", "security", "login", "budget"}
HIGH_TOPICS = {"order", "product", "performance", "schedule"}
HIGH_RISK_TOPICS = {"payment", "security", "api", "database"}


def _stable_number(topic: str, low: int, span: int) -> int:
    return low + zlib.crc32(topic.encode("utf-8")) % span


def count_mentions(text: str, keyword: str) -> int:
    # Hangul is a word character, so particles attached to Korean terms would defeat \b.
    if keyword.isascii():
        return len(re.findall(rf"\b{re.escape(keyword)}\b", text))
    return text.count(keyword)


def priority_for(topic: str, mentions: int) -> str:
    if topic in CRITICAL_TOPICS:
        return "critical"
    if topic in HIGH_TOPICS:
        return "high"
    return "medium" if mentions > 1 else "low"


def risk_for(topic: str, priority: str) -> str:
    if topic in HIGH_RISK_TOPICS:
        return "high"
    return "medium" if priority in ("critical", "high") else "low"


def extract_requirements(content: str) -> List[Dict[str, Any]]:
    """Up to MAX_REQUIREMENTS requirements, in topic order"""
    text = content.lower()
    requirements: List[Dict[str, Any]] = []
    for requirement_type in REQUIREMENT_TYPES:
        for topic, keywords in TOPICS[requirement_type]:
            mentions = sum(count_mentions(text, keyword) for keyword in keywords)
            if not mentions:
                continue
            priority = priority_for(topic, mentions)
            requirements.append({
                "id": str(len(requirements) + 1),
                "title": TITLES.get(topic, f"{topic.title()} requirement"),
                "description": DESCRIPTIONS.get(topic, f"Define and implement the detailed {topic} requirements."),
                "requirement_type": requirement_type,
                "priority": priority,
                "category": CATEGORIES.get(topic, "Other"),
                "acceptance_criteria": ACCEPTANCE_CRITERIA.get(topic, [
                    f"{topic.title()} works as specified",
                    f"{topic.title()} errors are handled",
                    f"{topic.title()} tests pass",
                ]),
                "business_value": _stable_number(topic, 5, 5),
                "estimated_effort": _stable_number(topic[::-1], 5, 20),
                "risk_level": risk_for(topic, priority),
                "status": "identified",
            })
    return requirements[:MAX_REQUIREMENTS]


def summarize(requirements: List[Dict[str, Any]]) -> Dict[str, Any]:
    total_value = sum(r["business_value"] for r in requirements)
    return {
        "total_requirements": len(requirements),
        "by_type": {t: sum(1 for r in requirements if r["requirement_type"] == t) for t in REQUIREMENT_TYPES},
        "by_priority": {p: sum(1 for r in requirements if r["priority"] == p) for p in PRIORITIES},
        "estimated_total_effort": sum(r["estimated_effort"] for r in requirements),
        "average_business_value": round(total_value / len(requirements), 1) if requirements else 0,
    }


def analyze_rfp(project_id: str, content: str, document_id: Optional[str] = None) -> Dict[str, Any]:
    requirements = extract_requirements(content)
    now = datetime.now(timezone.utc)
    analysis = {
        "analysis_id": f"analysis_{int(now.timestamp() * 1000)}",
        "project_id": project_id,
        "document_id": document_id,
        "analysis_type": "requirement_extraction",
        "ai_model": "keyword-extraction",
        "requirements": requirements,
        "confidence_score": 0.85 if requirements else 0.0,
        "created_at": now.isoformat(),
    }
    return {"analysis": analysis, "requirements": requirements, "summary": summarize(requirements)}
