from mediabot.main import main

main()
