"""Backend proxy that shapes frontend requests for the Gemini generateContent API."""
