from slotflow.main import main

main()
