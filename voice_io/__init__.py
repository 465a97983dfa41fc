"""
Voice I/O Engine

Turns recorded or live speech into text through Google Cloud
Speech-to-Text, and synchronized speech audio back into live captions.
"""

__version__ = "1.0.0"
