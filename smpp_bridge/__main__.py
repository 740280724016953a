from smpp_bridge.main import main

main()
