"""EntraLab: provision Entra ID lab environments through Microsoft Graph.

To load configuration:
    from entralab.config import load_settings

To call Graph:
    from entralab.core.graph import GraphSession, invoke_graph_request
"""
