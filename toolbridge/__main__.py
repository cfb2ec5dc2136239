from toolbridge.cli import main

main()
