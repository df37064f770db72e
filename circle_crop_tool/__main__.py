from circle_crop_tool.app import main

main()
