"""Sample records for the mock backend.

Loaded by ``build_services(seed=True)`` so the CLI and local development
have something to show without a record service.
"""

from typing import Any, Dict, List

from crmdesk.crm.models import EntityKind

SEED_RECORDS: Dict[EntityKind, List[Dict[str, Any]]] = {
    EntityKind.CONTACT: [
        {
            "id": 1,
            "name": "Sarah Johnson",
            "email": "sarah.johnson@techcorp.com",
            "phone": "+1 (555) 123-4567",
            "company": "TechCorp Solutions",
            "position": "VP of Engineering",
            "tags": ["enterprise", "decision-maker"],
            "created_at": "2024-01-15T10:30:00Z",
            "updated_at": "2024-01-15T10:30:00Z",
        },
        {
            "id": 2,
            "name": "Michael Chen",
            "email": "m.chen@innovate.io",
            "phone": "+1 (555) 234-5678",
            "company": "Innovate.io",
            "position": "CTO",
            "tags": ["startup", "technical"],
            "created_at": "2024-01-18T14:20:00Z",
            "updated_at": "2024-01-18T14:20:00Z",
        },
        {
            "id": 3,
            "name": "Emily Rodriguez",
            "email": "emily.r@globalretail.com",
            "phone": "+1 (555) 345-6789",
            "company": "Global Retail Inc",
            "position": "Head of Procurement",
            "tags": ["retail"],
            "created_at": "2024-01-20T09:15:00Z",
            "updated_at": "2024-01-20T09:15:00Z",
        },
    ],
    EntityKind.DEAL: [
        {
            "id": 1,
            "title": "TechCorp Platform License",
            "value": 85000,
            "stage": "proposal",
            "contact_id": 1,
            "probability": 60,
            "expected_close_date": "2024-03-15",
        },
        {
            "id": 2,
            "title": "Innovate.io Pilot",
            "value": 15000,
            "stage": "qualified",
            "contact_id": 2,
            "probability": 40,
            "expected_close_date": "2024-02-28",
        },
        {
            "id": 3,
            "title": "Global Retail Rollout",
            "value": 120000,
            "stage": "lead",
            "contact_id": 3,
            "probability": 20,
            "expected_close_date": "2024-05-01",
        },
        {
            "id": 4,
            "title": "TechCorp Support Renewal",
            "value": 24000,
            "stage": "closed-won",
            "contact_id": 1,
            "probability": 100,
            "expected_close_date": "2024-01-31",
        },
    ],
    EntityKind.TASK: [
        {
            "id": 1,
            "title": "Send revised proposal",
            "description": "Include the volume discount discussed on the call",
            "priority": "high",
            "due_date": "2024-02-05",
            "completed": False,
            "contact_id": 1,
        },
        {
            "id": 2,
            "title": "Schedule pilot kickoff",
            "priority": "medium",
            "due_date": "2024-02-10",
            "completed": False,
            "contact_id": 2,
        },
        {
            "id": 3,
            "title": "Intro email to procurement",
            "priority": "low",
            "completed": True,
            "contact_id": 3,
        },
    ],
    EntityKind.ACTIVITY: [
        {
            "id": 1,
            "type": "call",
            "subject": "Discovery call",
            "description": "Walked through current tooling and pain points",
            "contact_id": 1,
            "deal_id": 1,
            "timestamp": "2024-01-22T15:00:00Z",
            "duration": 45,
        },
        {
            "id": 2,
            "type": "email",
            "subject": "Pilot scope",
            "description": "Shared pilot scope document",
            "contact_id": 2,
            "deal_id": 2,
            "timestamp": "2024-01-24T11:30:00Z",
        },
        {
            "id": 3,
            "type": "meeting",
            "subject": "Procurement intro",
            "contact_id": 3,
            "deal_id": 3,
            "timestamp": "2024-01-26T16:00:00Z",
            "duration": 30,
        },
    ],
    EntityKind.COMMENT: [
        {
            "id": 1,
            "contact_id": 1,
            "author": "Alex Morgan",
            "content": "Prefers email over phone for follow-ups.",
            "timestamp": "2024-01-22T16:10:00Z",
        },
        {
            "id": 2,
            "contact_id": 2,
            "author": "Alex Morgan",
            "content": "Budget approval expected end of quarter.",
            "timestamp": "2024-01-24T12:00:00Z",
        },
    ],
}
