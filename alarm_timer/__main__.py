from .timer_app import main

main()
