COURSES = {
    "password-cracking": {
        "id": "password-cracking",
        "title": "Password Cracking Lab",
        "description": "Learn how passwords are cracked and how to defend against it.",
        "category": "penetration-testing",
        "difficulty": "intermediate",
        "estimatedTime": "45 min",
        "exercises": ["dictionary-attack", "brute-force", "hybrid-attack"],
        "prerequisites": ["basic-security"],
    },
    "network-scanning": {
        "id": "network-scanning",
        "title": "Network Scanning",
        "description": "Network scanning and host discovery techniques.",
        "category": "reconnaissance",
        "difficulty": "beginner",
        "estimatedTime": "30 min",
        "exercises": ["host-discovery", "port-scanning", "service-detection"],
        "prerequisites": [],
    },
    "cryptography": {
        "id": "cryptography",
        "title": "Cryptography Challenge",
        "description": "Cryptography basics and classical ciphers.",
        "category": "cryptography",
        "difficulty": "intermediate",
        "estimatedTime": "60 min",
        "exercises": ["caesar-cipher", "vigenere-cipher", "frequency-analysis"],
        "prerequisites": ["basic-mathematics"],
    },
    "sql-injection": {
        "id": "sql-injection",
        "title": "SQL Injection Lab",
        "description": "How SQL injection works and how to prevent it.",
        "category": "web-security",
        "difficulty": "intermediate",
        "estimatedTime": "40 min",
        "exercises": ["union-based", "boolean-based", "time-based"],
        "prerequisites": ["web-basics", "database-basics"],
    },
    "blue-team-siem": {
        "id": "blue-team-siem",
        "title": "Blue Team & SIEM",
        "description": "Blue team defence and SIEM log analysis.",
        "category": "defense",
        "difficulty": "advanced",
        "estimatedTime": "90 min",
        "exercises": ["log-analysis", "incident-response", "threat-hunting"],
        "prerequisites": ["network-security", "system-administration"],
    },
    "threat-modeling": {
        "id": "threat-modeling",
        "title": "Threat Modeling",
        "description": "Threat modeling methods in practice.",
        "category": "security-architecture",
        "difficulty": "advanced",
        "estimatedTime": "75 min",
        "exercises": ["stride-analysis", "attack-trees", "risk-assessment"],
        "prerequisites": ["security-fundamentals"],
    },
    "mobile-security": {
        "id": "mobile-security",
        "title": "Mobile Security",
        "description": "Security analysis of mobile apps.",
        "category": "mobile",
        "difficulty": "advanced",
        "estimatedTime": "80 min",
        "exercises": ["android-analysis", "ios-security", "mobile-malware"],
        "prerequisites": ["mobile-development"],
    },
}

CATEGORIES = [
    "penetration-testing", "web-security", "cryptography", "reconnaissance",
    "defense", "security-architecture", "mobile",
]
DIFFICULTIES = ["beginner", "intermediate", "advanced"]

POPULAR = ["network-scanning", "cryptography", "password-cracking"]


def filter_courses(category=None, difficulty=None, search=None):
    courses = list(COURSES.values())
    if category and category != "all":
        courses = [c for c in courses if c["category"] == category]
    if difficulty and difficulty != "all":
        courses = [c for c in courses if c["difficulty"] == difficulty]
    if search:
        needle = search.lower()
        courses = [c for c in courses if needle in c["title"].lower() or needle in c["description"].lower()]
    return courses


def recommend(level, completed_ids):
    """Up to three courses suited to ``level`` that are not done yet."""
    if level <= 2:
        picks = ["network-scanning", "cryptography"]
    elif level <= 4:
        picks = ["password-cracking", "sql-injection"]
    else:
        picks = ["blue-team-siem", "threat-modeling", "mobile-security"]
    picks = [c for c in picks if c not in completed_ids]
    for course_id in COURSES:
        if len(picks) >= 3:
            break
        if course_id not in completed_ids and course_id not in picks:
            picks.append(course_id)
    return [COURSES[c] for c in picks[:3]]


# Ordered course sequences; isPrerequisite marks steps that build on earlier ones.
LEARNING_PATHS = [
    {
        "id": "beginner-path",
        "name": "Security Foundations",
        "description": "A complete path for learners starting from zero.",
        "estimatedTime": "3-4 weeks",
        "difficulty": "beginner",
        "courses": [
            ("network-scanning", False),
            ("cryptography", False),
            ("password-cracking", True),
            ("sql-injection", True),
        ],
    },
    {
        "id": "pentesting-path",
        "name": "Penetration Tester",
        "description": "Go deeper into offensive testing techniques.",
        "estimatedTime": "6-8 weeks",
        "difficulty": "intermediate",
        "courses": [
            ("network-scanning", False),
            ("password-cracking", True),
            ("sql-injection", True),
            ("mobile-security", True),
        ],
    },
    {
        "id": "defense-path",
        "name": "Blue Team Specialist",
        "description": "Focus on defence, detection and threat modelling.",
        "estimatedTime": "8-10 weeks",
        "difficulty": "advanced",
        "courses": [
            ("network-scanning", False),
            ("threat-modeling", True),
            ("blue-team-siem", True),
        ],
    },
]

CONTENT_PAGES = {
    "password-cracking": "/pages/exercises/password-cracking.html",
    "network-scanning": "/pages/exercises/network-scanning.html",
    "cryptography": "/pages/exercises/cryptography.html",
    "sql-injection": "/pages/exercises/sql-injection.html",
    "blue-team-siem": "/pages/courses/blue-team-siem.html",
    "threat-modeling": "/pages/courses/threat-modeling.html",
    "mobile-security": "/pages/courses/mobile-security.html",
}
COMING_SOON_PAGE = "/pages/courses/coming-soon.html"


def learning_paths():
    paths = []
    for path in LEARNING_PATHS:
        courses = [
            {**COURSES[course_id], "order": order, "isPrerequisite": prerequisite}
            for order, (course_id, prerequisite) in enumerate(path["courses"], start=1)
        ]
        paths.append({**path, "courses": courses})
    return paths


def estimated_minutes(course):
    """Leading number of ``estimatedTime`` ("45 min" -> 45), 0 if there is none."""
    head = course.get("estimatedTime", "").split(" ", 1)[0]
    return int(head) if head.isdigit() else 0
