from perp_bot.bot import main

main()
