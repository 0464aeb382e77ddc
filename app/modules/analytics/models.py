# Tables read by analytics

"""
Analytics has no table of its own. It reads:
- incidents_with_times / requirements_with_times: status, priority,
  created_at and the completion column (resolved_at / delivered_at),
  filtered on created_at and optionally on the department column
- activities: user_id, type, action, timestamp (performance view)
- registration_requests: status = pending (dashboard alerts)

Every summary is recorded in activities with type "analytics", action "viewed".
"""
