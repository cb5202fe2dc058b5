"""app.integrations — outbound HTTP gateway modules.

All outbound HTTP calls must go through a gateway in this package, never via
bare `requests` calls in the workflow core or services.

Current gateways:
  supplier_gateway.SupplierGateway — Supplier Onboarding REST API
                                     (ApplicationStore implementation)
"""
