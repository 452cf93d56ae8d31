"""
Services - business logic over the MongoDB stores.

- interaction_service: investor <-> startup interaction lifecycle
- nudge_service: startup nudges, quota, and connections
- matching_service: relaxed matching and strict search
- card_service: card projections for the UI
- user_service: profile registration and account deletion
- notification_service: inbox side effects
"""
