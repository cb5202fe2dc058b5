"""app.workflow — client-side supplier application workflow core.

Pure Python, no database and no Flask request context. Talks to persistence
only through an ``ApplicationStore`` (see ``store.py``); the HTTP
implementation lives in ``app.integrations.supplier_gateway``.

Modules:
  fields          — step/field catalog, coded enums
  file_refs       — FileRef reconciliation for file-bearing fields
  draft_manager   — in-memory form aggregate and save payloads
  step_navigator  — step sequencing, resume point, submit
  status_machine  — application/contract transition tables and predicates
  review          — reviewer actions against a persisted application
"""
