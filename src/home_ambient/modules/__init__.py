"""
Modules package for home-ambient.

- context: signal sampling into Context snapshots
- classifier: profile scoring and transition detection
- automation: rules, conditions, actions and dispatch
- history: bounded history and pattern mining
"""
