"""Template-based proposal section drafting.

Sections are looked up by type first, then by title, so both
"overview" and the Korean heading "프로젝트 개요" resolve to the same
template. Analysis and market research data replace the generic text
where they are supplied.
"""
from typing import Any, Callable, Dict, List, Optional

DEFAULT_CLIENT = "the client"

SECTION_ALIASES = {
    "project overview": "overview",
    "프로젝트 개요": "overview",
    "requirements analysis": "requirements",
    "요구사항 분석": "requirements",
    "proposed solution": "solution",
    "제안 솔루션": "solution",
    "technology stack": "tech_stack",
    "tech stack": "tech_stack",
    "기술 스택": "tech_stack",
    "project schedule": "schedule",
    "timeline": "schedule",
    "프로젝트 일정": "schedule",
    "budget and cost": "budget",
    "예산 및 비용": "budget",
    "team composition": "team",
    "팀 구성": "team",
    "risk management": "risk",
    "위험 관리": "risk",
    "결론": "conclusion",
}


def _numbered(items: List[str]) -> str:
    return "\n".join(f"{index}. {item}" for index, item in enumerate(items, start=1))


def _overview(title: str, rfp: Dict[str, Any], research: Dict[str, Any]) -> str:
    client = rfp.get("client") or DEFAULT_CLIENT
    scope = rfp.get("scope") or "the agreed project scope"
    return (
        f"{title} is a comprehensive web solution supporting the digital transformation of {client}.\n\n"
        "The core goals of this project are:\n\n"
        "• An intuitive, user-centered interface\n"
        "• A scalable and reliable system architecture\n"
        "• Performance tuned with current web technology\n"
        "• Compliance with security and accessibility standards\n\n"
        f"Through {scope} we will help {client} reach its business goals."
    )


def _requirements(title: str, rfp: Dict[str, Any], research: Dict[str, Any]) -> str:
    content = f"The requirements for {title} have been analyzed as follows.\n\n"
    requirements = rfp.get("requirements")
    if isinstance(requirements, dict):
        for key, heading in (("functional", "Functional"), ("technical", "Technical"), ("design", "Design")):
            content += f"## {heading} requirements\n{_numbered(requirements.get(key) or [])}\n\n"
        return content.rstrip()
    if isinstance(requirements, list) and requirements:
        titles = [r.get("title", str(r)) if isinstance(r, dict) else str(r) for r in requirements]
        return content + _numbered(titles)
    return content + _numbered([
        "User authentication and permission management",
        "Responsive web design",
        "Data management with CRUD features",
        "Search and filtering",
        "Administrator dashboard",
    ])


def _solution(title: str, rfp: Dict[str, Any], research: Dict[str, Any]) -> str:
    client = rfp.get("client") or DEFAULT_CLIENT
    return (
        f"Our proposed solution for {title}:\n\n"
        "## Core architecture\n\n"
        "**Frontend**\n"
        "- Modern web application built on React and Next.js\n"
        "- TypeScript for type safety\n"
        "- A consistent design system with Tailwind CSS\n\n"
        "**Backend**\n"
        "- RESTful API service\n"
        "- PostgreSQL for durability and scale\n"
        "- Token-based authentication\n\n"
        "**Infrastructure and delivery**\n"
        "- Cloud deployment\n"
        "- CI/CD pipeline\n"
        "- Monitoring and logging\n\n"
        f"This solution addresses the requirements of {client} effectively."
    )


def _tech_stack(title: str, rfp: Dict[str, Any], research: Dict[str, Any]) -> str:
    content = f"The technology stack for {title}.\n\n"
    stacks = research.get("technologyStack")
    if stacks:
        for stack in stacks:
            content += f"**{stack.get('category', 'Other')}**\n"
            content += "".join(f"• {tech}\n" for tech in stack.get("technologies", []))
            content += "\n"
        return content.rstrip()
    return content + (
        "**Frontend**\n• React\n• Next.js\n• TypeScript\n• Tailwind CSS\n\n"
        "**Backend**\n• Python\n• FastAPI\n• PostgreSQL\n\n"
        "**DevOps**\n• Docker\n• GitHub Actions\n• Cloud hosting"
    )


def _schedule(title: str, rfp: Dict[str, Any], research: Dict[str, Any]) -> str:
    content = f"Detailed schedule for {title}.\n\nPhase|Duration|Key activities|Deliverables\n----|----|----|----\n"
    timeline = research.get("timeline")
    if timeline:
        rows = [
            f"{phase.get('phase', '')}|{phase.get('duration', '')}|{phase.get('description', '')}|Related documents and results"
            for phase in timeline
        ]
        return content + "\n".join(rows)
    return content + "\n".join([
        "Planning/analysis|2-4 weeks|Requirements analysis, system design|Requirements and design specifications",
        "Development|8-16 weeks|Frontend and backend development|Source code, API documentation",
        "Testing|2-4 weeks|Unit, integration and user testing|Test results, bug reports",
        "Deployment|1-2 weeks|Production rollout, monitoring|Operations and deployment guides",
    ])


def _budget(title: str, rfp: Dict[str, Any], research: Dict[str, Any]) -> str:
    content = f"Budget estimate for {title}.\n\nItem|Amount|Notes\n----|----|----\n"
    price_range = (research.get("pricing") or {}).get("averageRange")
    if price_range:
        development = f"{price_range.get('min')}-{price_range.get('max')} {price_range.get('currency', '')}".strip()
        return content + "\n".join([
            f"Development|{development}|Base development cost",
            "Design|15-20% of development|UI/UX design",
            "Testing|10-15% of development|Quality assurance",
            "Project management|5-10% of development|Scheduling and communication",
            "Contingency|10% of total|Risk response",
        ])
    return content + "\n".join([
        "Development|50,000,000-120,000,000 KRW|Adjusted to project size",
        "Design|10,000,000-20,000,000 KRW|UI/UX design",
        "Testing|5,000,000-15,000,000 KRW|Quality assurance",
        "Project management|5,000,000-10,000,000 KRW|Scheduling and communication",
        "Contingency|7,000,000-16,500,000 KRW|Risk response",
        "**Estimated total**|**77,000,000-181,500,000 KRW**|**VAT excluded**",
    ])


def _team(title: str, rfp: Dict[str, Any], research: Dict[str, Any]) -> str:
    roles = [
        ("Project manager (1)", ["Overall planning and schedule", "Client communication and issue resolution", "Quality and risk management"]),
        ("Senior full-stack developer (1)", ["System architecture", "Core modules and code review", "Technical decisions and mentoring"]),
        ("Frontend developers (1-2)", ["User interface development", "Responsive design", "User experience tuning"]),
        ("Backend developer (1)", ["API server and database design", "Security and performance", "External integrations"]),
        ("QA engineer (1)", ["Test planning and execution", "Quality verification and bug tracking", "User testing support"]),
    ]
    body = "\n\n".join(f"**{role}**\n" + "\n".join(f"- {duty}" for duty in duties) for role, duties in roles)
    return f"Dedicated team proposed for {title}.\n\n{body}"


def _risk(title: str, rfp: Dict[str, Any], research: Dict[str, Any]) -> str:
    content = f"Expected risks for {title} and how we will respond.\n\n"
    risks = rfp.get("riskFactors")
    if risks:
        return content + "\n\n".join(
            f"**Risk {index}: {risk}**\nResponse: early detection through regular reviews"
            for index, risk in enumerate(risks, start=1)
        )
    return content + (
        "**Technical risk**\n- Learning cost of new technology\n- Outages in external API dependencies\n"
        "- Response: proof of concept up front, alternatives prepared\n\n"
        "**Schedule risk**\n- Delays from changing requirements\n- Blocking issues from external dependencies\n"
        "- Response: agile delivery with weekly sprint reviews\n\n"
        "**Quality risk**\n- Bugs from insufficient test coverage\n- Late discovery of performance issues\n"
        "- Response: automated testing and continuous monitoring"
    )


def _conclusion(title: str, rfp: Dict[str, Any], research: Dict[str, Any]) -> str:
    client = rfp.get("client") or DEFAULT_CLIENT
    key_points = rfp.get("keyPoints") or ["user-centered design", "scalable architecture", "strong security"]
    return (
        f"{title} is a key project in the digital transformation of {client}.\n\n"
        "## Success factors\n\n"
        "**Experience and expertise**\nProven methods and current technology drawn from similar projects.\n\n"
        "**Quality and reliability**\nA disciplined development process with thorough testing.\n\n"
        "**Clear communication**\nRegular progress reports so requirements are reflected accurately.\n\n"
        "**Ongoing support**\nTechnical support for stable operation after delivery.\n\n"
        f"Through {', '.join(key_points)} we will contribute to the business goals of {client}."
    )


SECTION_TEMPLATES: Dict[str, Callable[[str, Dict[str, Any], Dict[str, Any]], str]] = {
    "overview": _overview,
    "requirements": _requirements,
    "solution": _solution,
    "tech_stack": _tech_stack,
    "schedule": _schedule,
    "budget": _budget,
    "team": _team,
    "risk": _risk,
    "conclusion": _conclusion,
}


def resolve_section(section_type: str, section_title: str) -> Optional[str]:
    for candidate in (section_type, section_title):
        key = (candidate or "").strip().lower()
        if key in SECTION_TEMPLATES:
            return key
        if key in SECTION_ALIASES:
            return SECTION_ALIASES[key]
    return None


def generate_section_content(
    section_type: str,
    section_title: str,
    project_title: Optional[str] = None,
    rfp_analysis: Optional[Dict[str, Any]] = None,
    market_research: Optional[Dict[str, Any]] = None,
) -> str:
    title = project_title or "This project"
    section = resolve_section(section_type, section_title)
    if section is None:
        return (
            f"Write the details of {section_title} here.\n\n"
            f"This section is an important part of the {title} project."
        )
    return SECTION_TEMPLATES[section](title, rfp_analysis or {}, market_research or {})
