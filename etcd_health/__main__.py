from etcd_health.main import main

main()
