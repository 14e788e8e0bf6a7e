"""
Nexus Services

- operationService: operation store, audit log, templates
- mapTimelineService: windowed replay timeline projection
- mapLogisticsOverlayService: logistics lane projection
- tacticalMapInteractionService: map modes, dock tabs, keyboard shortcuts
"""
