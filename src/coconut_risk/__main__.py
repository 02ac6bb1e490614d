from coconut_risk.main import main

main()
