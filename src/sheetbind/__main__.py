from sheetbind.cli import main

main()
