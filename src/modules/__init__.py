"""
Cortex domain modules.

- catalog: providers, topics, questions and sequence management
- bookmarks: per-user bookmark store with legacy profile migration
- premium: subscription-based filtering of premium content
- shared: exceptions, base service and base repository
"""
