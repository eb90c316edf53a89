"""
Intelligence app for the brokerage platform.

A conversational assistant for the back office: admins describe changes in
Portuguese, an LLM proposes an action, and the action runs only after an
explicit confirmation. Every executed or cancelled action is audited.
"""
