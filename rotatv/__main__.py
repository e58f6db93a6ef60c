from rotatv.main import main

main()
