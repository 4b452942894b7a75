"""intake_server — FastAPI application for the conversational hiring intake.

Hosts the Telegram webhook (or runs long polling), and exposes admin
endpoints for question sets and read-only application summaries.
"""
