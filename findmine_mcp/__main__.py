from findmine_mcp.server import main

main()
