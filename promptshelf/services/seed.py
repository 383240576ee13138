"""
Demo Seed

Starter prompts, one per modality, loaded into an empty collection.
"""

from typing import Any, Dict, List

DEMO_PROMPTS: List[Dict[str, Any]] = [
    {
        "id": "1",
        "title": "Sci-Fi Spaceship Concept Art",
        "promptText": (
            "Generate a concept art of a sleek, futuristic spaceship exploring a nebula. "
            "The design should be minimalist with glowing blue accents. Style of Syd Mead."
        ),
        "modality": "Image",
        "theme": "Concept Art",
        "tags": ["sci-fi", "spaceship", "Syd Mead"],
        "notes": "Great for generating desktop wallpapers. Adding '4K resolution' can improve quality.",
        "createdAt": "2025-10-26T10:00:00Z",
    },
    {
        "id": "2",
        "title": "Python Function for Data Cleaning",
        "promptText": (
            "Write a Python function that takes a pandas DataFrame as input and removes "
            "duplicate rows, fills missing numerical values with the mean, and trims "
            "whitespace from all string columns."
        ),
        "modality": "Code",
        "theme": "Data Science",
        "tags": ["python", "pandas", "data cleaning"],
        "notes": "",
        "createdAt": "2025-10-26T11:00:00Z",
    },
    {
        "id": "3",
        "title": "Marketing Copy for a Coffee Shop",
        "promptText": (
            "Create a short, catchy marketing paragraph for a new artisanal coffee shop. "
            "Emphasize the cozy atmosphere, ethically sourced beans, and skilled baristas. "
            "Tone should be warm and inviting."
        ),
        "modality": "Text",
        "theme": "Marketing Copy",
        "tags": ["coffee", "advertising", "local business"],
        "notes": "Can be adapted for social media posts or website copy.",
        "createdAt": "2025-10-26T12:00:00Z",
    },
    {
        "id": "4",
        "title": "Epic Movie Trailer VO",
        "promptText": (
            "Generate a voice-over script for an epic fantasy movie trailer. The tone should "
            "be deep, dramatic, and mysterious. Include phrases like 'In a world of shadow...' "
            "and 'A hero will rise.'."
        ),
        "modality": "Audio",
        "theme": "Voice Over",
        "tags": ["movie trailer", "fantasy", "dramatic"],
        "notes": "",
        "createdAt": "2025-10-25T14:00:00Z",
    },
    {
        "id": "5",
        "title": "Short cooking tutorial video",
        "promptText": (
            "A 1-minute video showing how to make a perfect omelette. Start with ingredients "
            "display, show cracking eggs, whisking, pouring into a hot pan, and the final flip. "
            "Upbeat background music."
        ),
        "modality": "Video",
        "theme": "Cooking Tutorial",
        "tags": ["food", "cooking", "short video"],
        "notes": "",
        "createdAt": "2025-10-24T18:00:00Z",
    },
]
