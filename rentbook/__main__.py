from rentbook.cli import main

main()
