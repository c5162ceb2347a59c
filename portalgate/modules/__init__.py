"""
Portal Gateway modules.

auth, module_data and storage back the HTTP service; rpc and registry run
wherever the portal page or an embedded module frame is hosted. Modules
only import each other through their package interfaces.
"""
