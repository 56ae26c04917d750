"""
MultiAI - Multi-Provider Chat Orchestration

Routes a single finance-assistant chat request through a prioritized
cascade of interchangeable AI providers with availability tracking,
bounded retries and a uniform response contract.
"""

__version__ = "1.0.0"
__author__ = "multiai"
