"""Alert detection engine.

Leaf-first: threshold evaluation and dedup are pure; persistence, flag
resets and polling talk to the services; the change-feed listener drives
evaluation passes. :class:`pyfleetalerts.registry.SubscriptionRegistry`
wires them together.
"""
