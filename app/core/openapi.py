"""
OpenAPI schema customizations for drf-spectacular.

Tag naming follows the pattern: [App Name] - [Group Name]
Examples:
- Auth (JWT token endpoints)
- Payments - Escrow (funding, refunds, escrow lookups)
- Payments - Releases (milestone releases, payment history)
- Payments - Connect (creator payout onboarding)
"""

# Natural language summaries for simplejwt endpoints
# Maps operation_id to (summary, description)
TOKEN_SUMMARIES = {
    "auth_token_create": (
        "Obtain tokens",
        "Authenticate with email and password to receive JWT access and refresh tokens.",
    ),
    "auth_token_refresh_create": (
        "Refresh access token",
        "Get a new access token using a valid refresh token.",
    ),
}

TAG_DESCRIPTIONS = [
    {
        "name": "Auth",
        "description": "JWT token issue and refresh.",
    },
    {
        "name": "Payments - Escrow",
        "description": "Brand escrow funding through Stripe PaymentIntents, refunds and escrow lookups.",
    },
    {
        "name": "Payments - Releases",
        "description": "Milestone payment releases to creators and creator payment history.",
    },
    {
        "name": "Payments - Connect",
        "description": "Stripe Connect onboarding and payout account status for creators.",
    },
]


def group_endpoints(result, generator, request, public):
    """
    Postprocessing hook to group API endpoints by function.

    Payments endpoints set their tags with tags= in @extend_schema; auth
    endpoints come from simplejwt and are grouped here by operation ID.
    Also adds natural language summaries to the token endpoints.
    """
    paths = result.get("paths", {})

    for path, methods in paths.items():
        for method, operation in methods.items():
            if not isinstance(operation, dict):
                continue

            operation_id = operation.get("operationId", "")

            if operation_id in TOKEN_SUMMARIES:
                summary, description = TOKEN_SUMMARIES[operation_id]
                operation["summary"] = summary
                operation["description"] = description

            if operation_id.startswith("auth_"):
                operation["tags"] = ["Auth"]

    result["tags"] = TAG_DESCRIPTIONS

    return result
