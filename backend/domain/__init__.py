"""
Domain layer: framework-free entities, value objects, events and engine
components. Nothing here imports Django.
"""
