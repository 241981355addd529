"""Rule-based task decomposition.

Suggestions are deterministic: sizing and quality rules decide *whether* a
task should be split, and keyword families on the title decide *how*.
"""
