from autonomy.api.app import main

main()
