"""Operations behind the distro, audit log, cloud-init and machine endpoints."""