"""
Cursed Coddy - CLI Coding Tutor

Generates programming lessons with a local Ollama model, walks the learner
through a staged journey, and keeps progress on disk so it can be resumed.
"""

__version__ = "0.1.0"
