"""Request and response schemas for the ThesisFlow API."""
