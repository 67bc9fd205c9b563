from payroll_chat.cli.main import main

main()
