from iqversion import VersionManager, enable_version
from iqversion.transports.loopback import LoopbackConnection

def main():
    # Two peers wired back to back in one process
    A, B = LoopbackConnection.pair("alice@example.com/home", "bob@example.com/work")

    # B answers version queries. A has no identity set, so it only asks and
    # stays silent when queried, though it still advertises the namespace.
    enable_version(B, "DemoClient", "0.1")
    manager = VersionManager.get_instance_for(A)

    v = manager.query(B.jid, timeout=1.0)
    if v is None:
        print("No version from", B.jid)
    else:
        print(f"{B.jid} runs {v.name} {v.version} on {v.os}")

    # A second query inside the flood interval is dropped by B
    print("Immediate second query:", manager.query(B.jid, timeout=0.2))

    A.close()
    B.close()

if __name__ == "__main__":
    main()
