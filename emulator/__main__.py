from emulator.protocol_rpc.run_server import main

main()
