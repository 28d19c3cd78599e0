from typing import Any, Dict, List, Optional

SCOPE_HOUR_FACTORS = {"mvp": 0.7, "standard": 1.0, "enterprise": 1.5}
ENTERPRISE_RISK_INCREASE = 5
COMPLEXITY_STEP_UP = {"low": "medium", "medium": "high", "high": "high"}

# (category, task, hours, hourly rate in KRW, complexity, risk factor %)
BASE_WORK_ITEMS = [
    ("Planning/Analysis", "Requirements gathering and analysis", 40, 80000, "medium", 10),
    ("Planning/Analysis", "System architecture design", 32, 80000, "high", 15),
    ("Planning/Analysis", "API design and specification", 24, 70000, "medium", 5),
    ("Design", "UI/UX wireframes", 32, 60000, "medium", 10),
    ("Design", "Prototype", 40, 60000, "medium", 15),
    ("Design", "Design system", 24, 60000, "low", 5),
    ("Frontend", "Project setup", 16, 70000, "low", 5),
    ("Frontend", "Shared components", 48, 70000, "medium", 10),
    ("Frontend", "Main pages", 40, 70000, "medium", 10),
    ("Frontend", "User authentication", 32, 70000, "high", 20),
    ("Frontend", "Dashboard", 56, 70000, "high", 15),
    ("Backend", "Database schema design", 24, 70000, "medium", 10),
    ("Backend", "REST API implementation", 64, 70000, "high", 15),
    ("Backend", "Authentication and authorization", 32, 70000, "high", 20),
    ("Backend", "Data migration", 16, 70000, "medium", 25),
    ("Database", "Database environment setup", 16, 75000, "medium", 10),
    ("Database", "Index optimization", 12, 75000, "high", 15),
    ("Database", "Backup and recovery", 16, 75000, "medium", 20),
    ("Testing", "Test planning", 16, 55000, "low", 5),
    ("Testing", "Unit tests", 32, 55000, "medium", 10),
    ("Testing", "Integration tests", 24, 55000, "medium", 15),
    ("Testing", "User testing and feedback", 16, 55000, "medium", 20),
    ("Deployment/Infrastructure", "CI/CD pipeline", 24, 75000, "high", 20),
    ("Deployment/Infrastructure", "Production environment", 32, 75000, "high", 25),
    ("Deployment/Infrastructure", "Monitoring", 16, 75000, "medium", 15),
    ("Documentation", "API documentation", 16, 50000, "low", 5),
    ("Documentation", "User manual", 24, 50000, "low", 5),
    ("Documentation", "Operations guide", 16, 50000, "low", 10),
    ("Project Management", "Kickoff and planning", 8, 80000, "low", 5),
    ("Project Management", "Weekly status meetings and reports", 32, 80000, "low", 5),
    ("Project Management", "Issue management", 24, 80000, "medium", 15),
]


def generate_work_items(project_type: Optional[str] = None, scope: Optional[str] = None) -> List[Dict[str, Any]]:
    """Standard work breakdown scaled by scope: mvp trims hours, enterprise adds hours, complexity and risk."""
    factor = SCOPE_HOUR_FACTORS.get(scope or "standard", 1.0)
    items = []
    for index, (category, task, hours, rate, complexity, risk) in enumerate(BASE_WORK_ITEMS):
        if scope == "enterprise":
            complexity = COMPLEXITY_STEP_UP[complexity]
            risk += ENTERPRISE_RISK_INCREASE
        items.append({
            "id": f"item-{index + 1}",
            "category": category,
            "task": task,
            "hours": int(hours * factor),
            "hourlyRate": rate,
            "complexity": complexity,
            "riskFactor": risk,
        })
    return items
