# Database model for incidents
# Table and view live in Supabase; this file only documents the columns the service relies on.

"""
incidents table:
- id: uuid (PK, default gen_random_uuid())
- title: text, not null
- description: text, default ''
- type: text - technical | software | hardware | network | other
- priority: text - low | medium | high | urgent
- status: text - open | in_progress | resolved | closed (default open)
- affected_area_id: integer (FK departments.id)
- assigned_to: uuid, nullable (FK profiles.id)
- created_by: uuid (FK profiles.id)
- created_at: timestamptz, default now()
- last_modified_at: timestamptz, nullable
- last_modified_by: uuid, nullable (FK profiles.id)
- resolved_at: timestamptz, set iff status in (resolved, closed)

incidents_with_times (view, read side):
- every incidents column
- affected_area_name: departments.name
- assigned_to_name, created_by_name: profiles.name
- resolution_time_hours: numeric, derived from created_at/resolved_at

Rows in attachments and activities reference incidents.id; deleting an incident
that still has attachments fails with 23503 and is reported as Conflict.
"""
