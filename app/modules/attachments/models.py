# Database model for attachments
# Files live in the Supabase Storage bucket configured as ATTACHMENTS_BUCKET.

"""
attachments table:
- id: uuid (PK)
- name: text, original file name
- url: text, public storage URL
- size: integer, bytes
- type: text, MIME type
- uploaded_by: uuid (FK profiles.id)
- incident_id: uuid, nullable (FK incidents.id)
- requirement_id: uuid, nullable (FK requirements.id)
- created_at: timestamptz

Object key: <uploaded_by>/<epoch millis>-<name>
Exactly one of incident_id / requirement_id is set.
"""
