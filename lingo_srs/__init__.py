"""
lingo-srs: spaced-repetition core for phrase learning.

Decides when each learned phrase must be reviewed again and how its
difficulty estimate evolves as the learner answers.
"""

__version__ = "1.0.0"
