from gptbridge.cli import main

main()
