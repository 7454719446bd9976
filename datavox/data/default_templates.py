"""
Built-in templates, grouped by category.

These are read-only: they are merged into every TemplateStore on
initialisation and never persisted or deleted.
"""

from __future__ import annotations

from typing import Any

from datavox.schemas.template import Template

MY_TEMPLATES = "My Templates"

DEFAULT_TEMPLATES: dict[str, list[dict[str, Any]]] = {
    "Interviews": [
        {
            "id": "software-engineer-interview",
            "name": "Software Engineer Interview",
            "description": (
                "Template for technical interviews with software engineers, "
                "including technical assessment and behavioral questions"
            ),
            "subcategory": "Technical",
            "fields": [
                {"id": "1", "name": "Candidate Name", "type": "name", "required": True},
                {"id": "2", "name": "Technical Skills Discussed", "type": "keyFinding"},
                {"id": "3", "name": "Problem Solving Examples", "type": "quote"},
                {"id": "4", "name": "System Design Discussion", "type": "text"},
                {"id": "5", "name": "Interview Date", "type": "date", "required": True},
            ],
        },
        {
            "id": "marketing-interview",
            "name": "Marketing Interview",
            "description": (
                "Template for interviewing marketing professionals, focusing on "
                "campaign experience and strategic thinking"
            ),
            "subcategory": "Marketing",
            "fields": [
                {"id": "1", "name": "Candidate Name", "type": "name", "required": True},
                {"id": "2", "name": "Campaign Examples", "type": "keyFinding"},
                {"id": "3", "name": "Marketing Strategy Insights", "type": "quote"},
                {"id": "4", "name": "Interview Date", "type": "date", "required": True},
            ],
        },
    ],
    "Sales Calls": [
        {
            "id": "sales-discovery-call",
            "name": "Sales Discovery Call",
            "description": (
                "Template for initial sales discovery calls to understand client "
                "needs and pain points"
            ),
            "fields": [
                {"id": "1", "name": "Client Name", "type": "name", "required": True},
                {"id": "2", "name": "Company Name", "type": "text", "required": True},
                {"id": "3", "name": "Pain Points", "type": "keyFinding"},
                {"id": "4", "name": "Budget Discussion", "type": "quote"},
                {"id": "5", "name": "Next Steps", "type": "text"},
                {"id": "6", "name": "Call Date", "type": "date", "required": True},
            ],
        },
    ],
    "Court Cases": [
        {
            "id": "witness-testimony",
            "name": "Witness Testimony",
            "description": (
                "Template for recording and analyzing witness testimonies in legal proceedings"
            ),
            "fields": [
                {"id": "1", "name": "Witness Name", "type": "name", "required": True},
                {"id": "2", "name": "Case Number", "type": "text", "required": True},
                {"id": "3", "name": "Key Statements", "type": "quote"},
                {"id": "4", "name": "Important Dates Mentioned", "type": "date"},
                {"id": "5", "name": "Critical Evidence", "type": "keyFinding"},
            ],
        },
    ],
    "Podcasts": [
        {
            "id": "interview-podcast",
            "name": "Interview Podcast",
            "description": "Template for podcast episodes featuring guest interviews",
            "fields": [
                {"id": "1", "name": "Guest Name", "type": "name", "required": True},
                {"id": "2", "name": "Episode Title", "type": "text", "required": True},
                {"id": "3", "name": "Key Takeaways", "type": "keyFinding"},
                {"id": "4", "name": "Notable Quotes", "type": "quote"},
                {"id": "5", "name": "Topics Discussed", "type": "text"},
                {"id": "6", "name": "Recording Date", "type": "date"},
            ],
        },
    ],
    "Voice Notes": [
        {
            "id": "meeting-notes",
            "name": "Meeting Notes",
            "description": (
                "Template for capturing and organizing meeting discussions and action items"
            ),
            "fields": [
                {"id": "1", "name": "Meeting Title", "type": "text", "required": True},
                {"id": "2", "name": "Participants", "type": "name", "required": True},
                {"id": "3", "name": "Key Decisions", "type": "keyFinding"},
                {"id": "4", "name": "Action Items", "type": "text"},
                {"id": "5", "name": "Important Quotes", "type": "quote"},
                {"id": "6", "name": "Meeting Date", "type": "date", "required": True},
            ],
        },
    ],
    "Debates": [
        {
            "id": "academic-debate",
            "name": "Academic Debate",
            "description": "Template for academic debates and discussions",
            "fields": [
                {"id": "1", "name": "Topic", "type": "text", "required": True},
                {"id": "2", "name": "Participants", "type": "name", "required": True},
                {"id": "3", "name": "Key Arguments", "type": "keyFinding"},
                {"id": "4", "name": "Notable Quotes", "type": "quote"},
                {"id": "5", "name": "Conclusions", "type": "text"},
                {"id": "6", "name": "Debate Date", "type": "date", "required": True},
            ],
        },
    ],
    MY_TEMPLATES: [],
}


def default_templates() -> dict[str, list[Template]]:
    """Fresh Template objects for every built-in template, keyed by category."""
    return {
        category: [
            Template.model_validate({**raw, "category": category, "is_default": True})
            for raw in templates
        ]
        for category, templates in DEFAULT_TEMPLATES.items()
    }
