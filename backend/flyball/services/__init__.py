"""
Services Layer

Pure business logic services that:
- Accept domain inputs (tournament IDs, race and ring numbers)
- Return domain outputs (immutable snapshots, result objects)
- Do NOT depend on HTTP request/response objects
- Only the assignment engine mutates race assignments
"""
