from qrstyle.cli import main

main()
