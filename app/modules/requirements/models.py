# Database model for requirements

"""
requirements table:
- id: uuid (PK)
- title: text, not null
- description: text, default ''
- type: text - document | equipment | service | other
- priority: text - low | medium | high | urgent
- status: text - pending | in_progress | delivered | closed (default pending)
- requesting_area_id: integer (FK departments.id)
- assigned_to: uuid, nullable (FK profiles.id)
- created_by: uuid (FK profiles.id)
- estimated_delivery_date: date, nullable, set on create only
- created_at, last_modified_at: timestamptz
- last_modified_by: uuid, nullable
- delivered_at: timestamptz, set iff status in (delivered, closed)

requirements_with_times (view): requirements.* plus requesting_area_name,
assigned_to_name, created_by_name and delivery_time_hours.
"""
