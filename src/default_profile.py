from __future__ import annotations

import copy
from typing import Any, Dict

# Seeded into the store on the first read of an empty table and served whenever
# the store cannot be reached.
_DEFAULT_PROFILE: Dict[str, Any] = {
    "web2": {
        "personal": {
            "name": "Your Name",
            "title": "Frontend Developer",
            "email": "you@example.com",
            "showEmail": True,
            "phone": "",
            "showPhone": False,
            "image": None,
            "enable3D": False,
            "enableGradient": False,
            "borderStyle": "gradient",
        },
        "sections": [
            {
                "id": "about",
                "title": "About",
                "enableGlassEffect": False,
                "blocks": [
                    {"type": "title", "content": "About me"},
                    {"type": "text", "content": "Tell visitors who you are and what you build."},
                ],
            },
            {
                "id": "experience",
                "title": "Experience",
                "enableGlassEffect": False,
                "blocks": [
                    {"type": "title", "content": "Company", "duration": "2022 - Present"},
                    {"type": "text", "content": "What you worked on.", "image": [], "imageLink": []},
                ],
            },
        ],
    },
    "web3": {
        "personal": {
            "name": "Pseudonym.eth",
            "title": "Community Ambassador",
            "email": "anon@example.com",
            "showEmail": False,
            "phone": "",
            "showPhone": False,
            "image": None,
            "enable3D": True,
            "enableGradient": True,
            "borderStyle": "gradient",
        },
        "sections": [
            {
                "id": "projects",
                "title": "Projects",
                "enableGlassEffect": True,
                "blocks": [
                    {"type": "title", "content": "On-chain work"},
                    {"type": "text", "content": "DAOs, collectives and communities you contribute to."},
                ],
            },
        ],
    },
}


def default_profile() -> Dict[str, Any]:
    """Return a fresh deep copy so callers can mutate it freely."""
    return copy.deepcopy(_DEFAULT_PROFILE)
