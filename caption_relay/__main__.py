from caption_relay.server import main

main()
