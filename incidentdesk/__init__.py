"""IncidentDesk: security incident reporting, triage and analytics service."""
