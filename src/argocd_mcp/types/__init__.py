"""Protocol types: JSON-RPC 2.0 envelopes and the MCP models this server speaks."""
