"""textarena MCP gateway: remote tool aggregation plus the local verify_facts tool."""
