"""
gptbridge Functions

Catalog of the functions the AI can call, and the local chat actions.
"""
