"""Question bank curation pipeline.

Extracts exam questions from scanned past papers, generates new multiple
choice questions grounded in reference texts, and composes difficulty
ordered practice sets from the bank.
"""

__version__ = "0.1.0"
