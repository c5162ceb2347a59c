"""
Portal Gateway - Module Integration Gateway

Lets independently deployed portal modules persist user-scoped data and
call back into the host page without holding end-user credentials.

Architecture:
- Each module is self-contained with clear interfaces
- Modules are completely replaceable
- No module knows the internals of another
- All communication through defined interfaces

Modules:
- auth: Module key verification and bearer identity resolution
- module_data: Visibility-scoped module data store
- rpc: Cross-window request/response protocol (envelope, client, host)
- registry: Live module registry (origins and allowed actions)
- storage: Data persistence abstraction
- api: REST API models
- config: Runtime configuration
"""

__version__ = "1.0.0"
