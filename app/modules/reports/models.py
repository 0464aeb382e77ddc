# Database model for reports

"""
reports table:
- id: uuid (PK)
- type: text - incidents | requirements | dashboard
- format: text - csv | json
- status: text - processing | completed | error
- parameters: jsonb, the request as received (dateRange, filters)
- requested_by: uuid (FK profiles.id)
- started_at, completed_at: timestamptz
- download_url: text, public URL in the "reports" storage bucket
- summary, metrics: jsonb
- processing_time_ms: integer
- error_message: text, nullable

Files are stored as <reportId>-<type>-<YYYY-MM-DD>.<csv|json>.
"""
