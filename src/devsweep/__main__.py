from devsweep.cli import main

main()
