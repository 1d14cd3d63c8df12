from sqlchart.cli import main

main()
