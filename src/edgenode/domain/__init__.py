"""
edgenode: domain model

Purpose
- Value types describing a device and the services it is configured to run:
  ConfigurationState, DeviceIdentityRecord, Attribute, ServiceDescriptor.
- Construction helpers, the configuration state machine and the resolver.

Functional requirements
- Domain values are pure and serializable; no IO at import time.
"""
