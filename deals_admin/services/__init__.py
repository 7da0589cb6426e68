"""Business logic services.

- lifecycle: review states and the transition table
- risk: risk flags for retailer applications and deals
- approval: approve/reject state machine with post-commit effects
- review_queries: pending/approved/rejected lists, stats, recently cleared
- catalog: admin-created entities, toggles and guarded deletes
- auth: Supabase session verification and caller role
- gateway: admin-only entry point used by the routes
"""
