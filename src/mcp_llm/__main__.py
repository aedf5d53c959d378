from mcp_llm.server import main

main()
