from booking_cron.runner import main

main()
