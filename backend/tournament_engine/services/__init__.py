"""
Services Layer

Pure tournament logic:
- Accept engine values (teams, groups, brackets, venues, constraints)
- Return new engine values; inputs are never mutated
- Do NOT depend on HTTP request/response objects
- Do NOT perform I/O
"""
