from stats_api.app import main

main()
