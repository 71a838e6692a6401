"""Layout engine — pure pipeline stages.

Stages flow strictly downward: classify -> spacing -> solve -> position
-> validate -> (emergency). The engine holds no state between calls.
"""
